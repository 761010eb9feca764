from decimal import Decimal

from rest_framework import serializers
from .models import Billboard, Category, Size, Color, Product, Image


class StoreScopedRelatedField(serializers.PrimaryKeyRelatedField):
    """Primary key reference restricted to records of the store in the serializer context"""

    def get_queryset(self):
        queryset = super().get_queryset()
        store = self.context.get('store')
        if store is None:
            return queryset.none()
        return queryset.filter(store=store)


class BillboardSerializer(serializers.ModelSerializer):
    store_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Billboard
        fields = ['id', 'store_id', 'label', 'image_url', 'created_at', 'updated_at']


class BillboardSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Billboard
        fields = ['id', 'label', 'image_url']


class CategorySerializer(serializers.ModelSerializer):
    store_id = serializers.IntegerField(read_only=True)
    billboard_id = StoreScopedRelatedField(queryset=Billboard.objects.all(), source='billboard')
    billboard = BillboardSummarySerializer(read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'store_id', 'name', 'billboard_id', 'billboard', 'created_at', 'updated_at']


class SizeSerializer(serializers.ModelSerializer):
    store_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Size
        fields = ['id', 'store_id', 'name', 'value', 'created_at', 'updated_at']


class ColorSerializer(serializers.ModelSerializer):
    store_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Color
        fields = ['id', 'store_id', 'name', 'value', 'created_at', 'updated_at']


class ImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Image
        fields = ['id', 'url', 'created_at']
        read_only_fields = ['id', 'created_at']


class ProductSerializer(serializers.ModelSerializer):
    store_id = serializers.IntegerField(read_only=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    images = ImageSerializer(many=True)

    # For writing: ids of records in the same store
    category_id = StoreScopedRelatedField(queryset=Category.objects.all(), source='category')
    size_id = StoreScopedRelatedField(queryset=Size.objects.all(), source='size')
    color_id = StoreScopedRelatedField(queryset=Color.objects.all(), source='color')

    # For reading: names used by list pages and the storefront
    category = serializers.SerializerMethodField()
    size = SizeSerializer(read_only=True)
    color = ColorSerializer(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'store_id', 'name', 'price', 'is_featured', 'is_archived',
            'category_id', 'size_id', 'color_id', 'category', 'size', 'color',
            'images', 'created_at', 'updated_at',
        ]

    def get_category(self, obj):
        return {'id': obj.category_id, 'name': obj.category.name}

    def validate_images(self, value):
        if not value:
            raise serializers.ValidationError('At least one image is required.')
        return value

    def create(self, validated_data):
        images = validated_data.pop('images', [])
        product = Product.objects.create(**validated_data)
        Image.objects.bulk_create([Image(product=product, url=image['url']) for image in images])
        return product

    def update(self, instance, validated_data):
        """Images are replaced as a whole when present in the payload"""
        images = validated_data.pop('images', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if images is not None:
            instance.images.all().delete()
            Image.objects.bulk_create([Image(product=instance, url=image['url']) for image in images])
        return instance
