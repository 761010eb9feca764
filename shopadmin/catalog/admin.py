from django.contrib import admin
from django.utils.html import format_html
from .models import Billboard, Category, Size, Color, Product, Image


@admin.register(Billboard)
class BillboardAdmin(admin.ModelAdmin):
    list_display = ['label', 'store', 'image_preview', 'created_at']
    list_filter = ['store', 'created_at']
    search_fields = ['label']
    ordering = ['label']
    readonly_fields = ['image_preview', 'created_at', 'updated_at']

    def image_preview(self, obj):
        if not obj.image_url:
            return '-'
        return format_html('<img src="{}" style="max-height: 60px;" />', obj.image_url)
    image_preview.short_description = 'Image'


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'billboard', 'store', 'created_at']
    list_filter = ['store', 'created_at']
    search_fields = ['name', 'billboard__label']
    ordering = ['name']


@admin.register(Size)
class SizeAdmin(admin.ModelAdmin):
    list_display = ['name', 'value', 'store', 'created_at']
    list_filter = ['store']
    search_fields = ['name', 'value']
    ordering = ['name']


@admin.register(Color)
class ColorAdmin(admin.ModelAdmin):
    list_display = ['name', 'value', 'store', 'created_at']
    list_filter = ['store']
    search_fields = ['name', 'value']
    ordering = ['name']


class ImageInline(admin.TabularInline):
    model = Image
    extra = 0
    fields = ['url', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'category', 'size', 'color', 'is_featured', 'is_archived', 'created_at']
    list_filter = ['is_featured', 'is_archived', 'store', 'category', 'created_at']
    search_fields = ['name', 'category__name']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ImageInline]
