from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from .validators import hex_color_validator, validate_image_url


class Billboard(models.Model):
    """Banner image with a label, shown at the top of a category page"""
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='billboards')
    label = models.CharField(max_length=200)
    image_url = models.CharField(max_length=500, validators=[validate_image_url])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.label

    class Meta:
        db_table = 'billboards'
        ordering = ['-created_at']


class Category(models.Model):
    """Product categories"""
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='categories')
    billboard = models.ForeignKey(Billboard, on_delete=models.PROTECT, related_name='categories')
    name = models.CharField(max_length=200, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['-created_at']


class Size(models.Model):
    """Product sizes (name plus short value, e.g. Small / S)"""
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='sizes')
    name = models.CharField(max_length=100)
    value = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.value})"

    class Meta:
        db_table = 'sizes'
        ordering = ['-created_at']


class Color(models.Model):
    """Product colors, value is a hex code"""
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='colors')
    name = models.CharField(max_length=100)
    value = models.CharField(max_length=9, validators=[hex_color_validator])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.value})"

    class Meta:
        db_table = 'colors'
        ordering = ['-created_at']


class Product(models.Model):
    """Product master"""
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='products')
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    size = models.ForeignKey(Size, on_delete=models.PROTECT, related_name='products')
    color = models.ForeignKey(Color, on_delete=models.PROTECT, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    is_featured = models.BooleanField(default=False, db_index=True)
    is_archived = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']


class Image(models.Model):
    """Hosted product image; only the URL returned by the asset host is kept"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='images')
    url = models.CharField(max_length=500, validators=[validate_image_url])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.url

    class Meta:
        db_table = 'product_images'
        ordering = ['created_at', 'id']
