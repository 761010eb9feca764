"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from shopadmin.stores.models import Store
from shopadmin.catalog.models import Billboard, Category, Size, Color, Product, Image

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_store(owner=None, name=None):
        """Create a test store"""
        if not owner:
            owner = TestDataFactory.create_user()
        if not name:
            name = f'Store_{TestDataFactory.random_string(6)}'
        return Store.objects.create(name=name, owner=owner)

    @staticmethod
    def create_billboard(store, label=None, image_url=None):
        """Create a test billboard"""
        if not label:
            label = f'Board {TestDataFactory.random_string(4)}'
        return Billboard.objects.create(
            store=store,
            label=label,
            image_url=image_url or 'https://images.example.com/billboard.png'
        )

    @staticmethod
    def create_category(store, name=None, billboard=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        if not billboard:
            billboard = TestDataFactory.create_billboard(store)
        return Category.objects.create(store=store, name=name, billboard=billboard)

    @staticmethod
    def create_size(store, name='Medium', value='M'):
        """Create a test size"""
        return Size.objects.create(store=store, name=name, value=value)

    @staticmethod
    def create_color(store, name='Black', value='#000000'):
        """Create a test color"""
        return Color.objects.create(store=store, name=name, value=value)

    @staticmethod
    def create_product(store, name=None, price=None, category=None, size=None, color=None,
                       is_featured=False, is_archived=False, images=1):
        """Create a test product with ``images`` hosted image URLs"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('19.99')
        product = Product.objects.create(
            store=store,
            name=name,
            price=price,
            category=category or TestDataFactory.create_category(store),
            size=size or TestDataFactory.create_size(store),
            color=color or TestDataFactory.create_color(store),
            is_featured=is_featured,
            is_archived=is_archived
        )
        for index in range(images):
            Image.objects.create(product=product, url=f'https://images.example.com/{product.pk}-{index}.png')
        return product


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
