from shopadmin.core.records import RecordResource, register

from .models import Store
from .serializers import StoreSerializer


class StoreResource(RecordResource):
    """Stores are scoped by their owner instead of by a parent store"""
    name = 'stores'
    model = Store
    serializer_class = StoreSerializer
    store_field = 'owner'
    protected_message = 'Make sure you removed all products and categories first.'

    def get_queryset(self, scope):
        return Store.objects.filter(owner=scope).order_by('created_at', 'pk')

    def save_kwargs(self, scope, user):
        return {'owner': user or scope}

    def store_id_of(self, instance):
        return instance.pk


STORES = register(StoreResource())
