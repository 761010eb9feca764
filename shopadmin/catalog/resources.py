from rest_framework import serializers

from shopadmin.core.records import RecordResource, register
from .filters import BillboardFilter, CategoryFilter, SizeFilter, ColorFilter, ProductFilter
from .models import Billboard, Category, Size, Color, Product
from .serializers import (
    BillboardSerializer, CategorySerializer, SizeSerializer, ColorSerializer, ProductSerializer
)


class CatalogResource(RecordResource):
    """Collection living under a store"""
    filterset_class = None
    select_related = ()
    prefetch_related = ()

    def get_queryset(self, scope):
        queryset = super().get_queryset(scope)
        if self.select_related:
            queryset = queryset.select_related(*self.select_related)
        if self.prefetch_related:
            queryset = queryset.prefetch_related(*self.prefetch_related)
        return queryset

    def filter_queryset(self, queryset, params, include_archived=False):
        if self.filterset_class is None:
            return queryset
        filterset = self.filterset_class(params, queryset=queryset)
        if not filterset.is_valid():
            raise serializers.ValidationError(filterset.errors)
        return filterset.qs


class BillboardResource(CatalogResource):
    name = 'billboards'
    model = Billboard
    serializer_class = BillboardSerializer
    filterset_class = BillboardFilter
    protected_message = 'Make sure you deleted all categories using this billboard first'


class CategoryResource(CatalogResource):
    name = 'categories'
    model = Category
    serializer_class = CategorySerializer
    filterset_class = CategoryFilter
    select_related = ('billboard',)
    protected_message = 'Make sure you deleted all products using this category first'


class SizeResource(CatalogResource):
    name = 'sizes'
    model = Size
    serializer_class = SizeSerializer
    filterset_class = SizeFilter
    protected_message = 'Make sure you deleted all products using this size first'


class ColorResource(CatalogResource):
    name = 'colors'
    model = Color
    serializer_class = ColorSerializer
    filterset_class = ColorFilter
    protected_message = 'Make sure you deleted all products using this color first'


class ProductResource(CatalogResource):
    name = 'products'
    model = Product
    serializer_class = ProductSerializer
    filterset_class = ProductFilter
    select_related = ('category', 'size', 'color')
    prefetch_related = ('images',)

    def filter_queryset(self, queryset, params, include_archived=False):
        queryset = super().filter_queryset(queryset, params, include_archived=include_archived)
        if not include_archived:
            queryset = queryset.filter(is_archived=False)
        return queryset


BILLBOARDS = register(BillboardResource())
CATEGORIES = register(CategoryResource())
SIZES = register(SizeResource())
COLORS = register(ColorResource())
PRODUCTS = register(ProductResource())
