from django.urls import path
from .views import (
    billboard_list_create, billboard_detail,
    category_list_create, category_detail,
    size_list_create, size_detail,
    color_list_create, color_detail,
    product_list_create, product_detail,
)

urlpatterns = [
    # Billboard endpoints
    path('billboards/', billboard_list_create, name='billboard-list-create'),
    path('billboards/<int:pk>/', billboard_detail, name='billboard-detail'),

    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Size endpoints
    path('sizes/', size_list_create, name='size-list-create'),
    path('sizes/<int:pk>/', size_detail, name='size-detail'),

    # Color endpoints
    path('colors/', color_list_create, name='color-list-create'),
    path('colors/<int:pk>/', color_detail, name='color-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
