import django_filters
from .models import Billboard, Category, Size, Color, Product


class BillboardFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='label', lookup_expr='icontains')

    class Meta:
        model = Billboard
        fields = ['search']


class CategoryFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    billboard_id = django_filters.NumberFilter(field_name='billboard_id')

    class Meta:
        model = Category
        fields = ['search', 'billboard_id']


class SizeFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')

    class Meta:
        model = Size
        fields = ['search']


class ColorFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')

    class Meta:
        model = Color
        fields = ['search']


class ProductFilter(django_filters.FilterSet):
    """
    Storefront product filters:
        ?category_id=1&color_id=2&size_id=3&is_featured=true&search=shirt
    """
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    category_id = django_filters.NumberFilter(field_name='category_id')
    color_id = django_filters.NumberFilter(field_name='color_id')
    size_id = django_filters.NumberFilter(field_name='size_id')
    is_featured = django_filters.BooleanFilter(field_name='is_featured')

    class Meta:
        model = Product
        fields = ['search', 'category_id', 'color_id', 'size_id', 'is_featured']
