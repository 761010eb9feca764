import logging
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticatedOrReadOnly
from rest_framework.response import Response

from shopadmin.core.records import RecordProtected
from shopadmin.stores.models import Store
from shopadmin.stores.utils import is_store_owner
from .resources import BILLBOARDS, CATEGORIES, SIZES, COLORS, PRODUCTS

logger = logging.getLogger('shopadmin.catalog')


def _owner_required(request, store, resource):
    if is_store_owner(request.user, store):
        return None
    logger.warning(
        f"User {request.user.username} attempted to modify {resource.name} of store {store.pk} they do not own"
    )
    return Response({'error': 'Unauthorized'}, status=status.HTTP_403_FORBIDDEN)


def _include_archived(request, store):
    flag = request.query_params.get('include_archived', '').lower() in ('1', 'true', 'yes')
    return flag and is_store_owner(request.user, store)


def list_create(request, store_id, resource):
    """GET lists the collection of a store (public), POST creates a record (owner only)"""
    store = get_object_or_404(Store, pk=store_id)

    if request.method == 'GET':
        try:
            data = resource.list(store, request.query_params, include_archived=_include_archived(request, store))
        except serializers.ValidationError as e:
            return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)

    denied = _owner_required(request, store, resource)
    if denied:
        return denied

    logger.info(f"User {request.user.username} creating {resource.name} in store {store_id} with data: {request.data}")
    try:
        data = resource.create(store, request.data, user=request.user, request=request)
    except serializers.ValidationError as e:
        logger.warning(f"{resource.name} creation validation failed: {e.detail}")
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error creating {resource.name}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(data, status=status.HTTP_201_CREATED)


def detail(request, store_id, pk, resource):
    """GET retrieves a record (public), PATCH updates and DELETE removes it (owner only)"""
    store = get_object_or_404(Store, pk=store_id)

    try:
        if request.method == 'GET':
            return Response(resource.retrieve(store, pk))

        denied = _owner_required(request, store, resource)
        if denied:
            return denied

        if request.method == 'PATCH':
            logger.info(f"User {request.user.username} patching {resource.name} {pk} with data: {request.data}")
            return Response(resource.update(store, pk, request.data, user=request.user, request=request))
        else:  # DELETE
            logger.info(f"User {request.user.username} deleting {resource.name} {pk} from store {store_id}")
            resource.delete(store, pk, user=request.user, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except ObjectDoesNotExist:
        logger.warning(f"{resource.name} {pk} not found in store {store_id}")
        return Response({'error': 'Not found'}, status=status.HTTP_404_NOT_FOUND)
    except serializers.ValidationError as e:
        logger.warning(f"{resource.name} update validation failed: {e.detail}")
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except RecordProtected as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
    except Exception as e:
        logger.error(f"Unexpected error in {resource.name} detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


# Billboard views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def billboard_list_create(request, store_id):
    """List all billboards of a store or create a new billboard"""
    return list_create(request, store_id, BILLBOARDS)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def billboard_detail(request, store_id, pk):
    """Retrieve, update or delete a billboard"""
    return detail(request, store_id, pk, BILLBOARDS)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def category_list_create(request, store_id):
    """List all categories of a store or create a new category"""
    return list_create(request, store_id, CATEGORIES)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def category_detail(request, store_id, pk):
    """Retrieve, update or delete a category"""
    return detail(request, store_id, pk, CATEGORIES)


# Size views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def size_list_create(request, store_id):
    """List all sizes of a store or create a new size"""
    return list_create(request, store_id, SIZES)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def size_detail(request, store_id, pk):
    """Retrieve, update or delete a size"""
    return detail(request, store_id, pk, SIZES)


# Color views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def color_list_create(request, store_id):
    """List all colors of a store or create a new color"""
    return list_create(request, store_id, COLORS)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def color_detail(request, store_id, pk):
    """Retrieve, update or delete a color"""
    return detail(request, store_id, pk, COLORS)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_list_create(request, store_id):
    """List products of a store (filterable, archived hidden) or create a new product"""
    return list_create(request, store_id, PRODUCTS)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_detail(request, store_id, pk):
    """Retrieve, update or delete a product"""
    return detail(request, store_id, pk, PRODUCTS)
