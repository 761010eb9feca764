"""
Store-scoped record services shared by the REST views and the dashboard.

Each collection registers a ``RecordResource`` describing its model and
serializer. Every operation takes a ``scope``: the owning Store for catalog
collections, the owning user for stores. The scope always comes from the
caller, never from the payload. The services validate through the
serializer, write audit log entries and translate ``ProtectedError`` into
``RecordProtected``.
"""
import logging

from django.db import transaction
from django.db.models import ProtectedError
from rest_framework import serializers

from .utils import create_audit_log

logger = logging.getLogger('shopadmin.core')

RESOURCES = {}


class RecordProtected(Exception):
    """Raised when a record cannot be deleted because other records reference it"""

    def __init__(self, message, protected_count=0):
        super().__init__(message)
        self.protected_count = protected_count


def register(resource):
    RESOURCES[resource.name] = resource
    return resource


def get_resource(name):
    try:
        return RESOURCES[name]
    except KeyError:
        raise LookupError(f"Unknown collection '{name}'")


class RecordResource:
    """Describes one collection: model, serializer and the store it hangs off"""
    name = ''
    model = None
    serializer_class = None
    store_field = 'store'
    protected_message = 'This record is still referenced by other records.'

    def display_name(self, instance):
        return str(instance)

    def get_queryset(self, scope):
        return self.model.objects.filter(**{self.store_field: scope}).order_by('-created_at', '-pk')

    def filter_queryset(self, queryset, params, include_archived=False):
        return queryset

    def get_serializer(self, scope, *args, **kwargs):
        context = kwargs.pop('context', {})
        context.setdefault('store', scope)
        return self.serializer_class(*args, context=context, **kwargs)

    def save_kwargs(self, scope, user):
        return {self.store_field: scope}

    def store_id_of(self, instance):
        return getattr(instance, 'store_id', instance.pk)

    # Operations

    def list(self, scope, params=None, include_archived=False):
        queryset = self.filter_queryset(self.get_queryset(scope), params or {}, include_archived=include_archived)
        return self.get_serializer(scope, queryset, many=True).data

    def get(self, scope, pk):
        return self.get_queryset(scope).get(pk=pk)

    def retrieve(self, scope, pk):
        return self.get_serializer(scope, self.get(scope, pk)).data

    def create(self, scope, data, user=None, request=None):
        serializer = self.get_serializer(scope, data=data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            instance = serializer.save(**self.save_kwargs(scope, user))
        logger.info(f"Created {self.name} {instance.pk} in store {self.store_id_of(instance)}")
        create_audit_log(
            request=request, user=user, action='create', model_name=self.model.__name__,
            object_id=instance.pk, object_name=self.display_name(instance),
            store_id=self.store_id_of(instance), changes=_jsonable(serializer.validated_data),
        )
        return serializer.data

    def update(self, scope, pk, data, user=None, request=None):
        instance = self.get(scope, pk)
        serializer = self.get_serializer(scope, instance, data=data, partial=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            instance = serializer.save()
        logger.info(f"Updated {self.name} {instance.pk} in store {self.store_id_of(instance)}")
        create_audit_log(
            request=request, user=user, action='update', model_name=self.model.__name__,
            object_id=instance.pk, object_name=self.display_name(instance),
            store_id=self.store_id_of(instance), changes=_jsonable(serializer.validated_data),
        )
        return serializer.data

    def delete(self, scope, pk, user=None, request=None):
        instance = self.get(scope, pk)
        name = self.display_name(instance)
        store_id = self.store_id_of(instance)
        try:
            with transaction.atomic():
                instance.delete()
        except ProtectedError as e:
            logger.warning(f"Delete of {self.name} {pk} rejected: {len(e.protected_objects)} dependent records")
            create_audit_log(
                request=request, user=user, action='delete_rejected', model_name=self.model.__name__,
                object_id=pk, object_name=name, store_id=store_id,
            )
            raise RecordProtected(self.protected_message, protected_count=len(e.protected_objects))
        logger.info(f"Deleted {self.name} {pk} from store {store_id}")
        create_audit_log(
            request=request, user=user, action='delete', model_name=self.model.__name__,
            object_id=pk, object_name=name, store_id=store_id,
        )


def _jsonable(validated_data):
    changes = {}
    for key, value in validated_data.items():
        if hasattr(value, 'pk'):
            changes[key] = value.pk
        elif isinstance(value, (str, int, float, bool)) or value is None:
            changes[key] = value
        else:
            changes[key] = str(value)
    return changes


def _messages(value):
    if isinstance(value, dict):
        return [m for item in value.values() for m in _messages(item)]
    if isinstance(value, (list, tuple)):
        return [m for item in value for m in _messages(item)]
    return [str(value)]


def validation_errors(exc):
    """Flatten a DRF ValidationError (or its detail) into {field: [messages]}"""
    detail = exc.detail if isinstance(exc, serializers.ValidationError) else exc
    if isinstance(detail, dict):
        return {key: _messages(value) for key, value in detail.items()}
    return {'non_field_errors': _messages(detail)}
