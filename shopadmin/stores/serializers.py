from rest_framework import serializers
from .models import Store


class StoreSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=200, allow_blank=False)

    class Meta:
        model = Store
        fields = ['id', 'name', 'owner', 'created_at', 'updated_at']
        read_only_fields = ['owner', 'created_at', 'updated_at']
