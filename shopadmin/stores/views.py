import logging
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shopadmin.core.records import RecordProtected
from .models import Store
from .resources import STORES
from .utils import is_store_owner

logger = logging.getLogger('shopadmin.stores')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def store_list_create(request):
    """List the caller's stores or create a new store owned by the caller"""
    if request.method == 'GET':
        return Response(STORES.list(request.user))

    logger.info(f"User {request.user.username} creating store with data: {request.data}")
    try:
        data = STORES.create(request.user, request.data, user=request.user, request=request)
    except serializers.ValidationError as e:
        logger.warning(f"Store creation validation failed: {e.detail}")
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def store_detail(request, store_id):
    """Retrieve, rename or delete a store (owner only)"""
    store = get_object_or_404(Store, pk=store_id)

    if not is_store_owner(request.user, store):
        logger.warning(f"User {request.user.username} attempted to access store {store_id} they do not own")
        return Response({'error': 'Unauthorized'}, status=status.HTTP_403_FORBIDDEN)

    try:
        if request.method == 'GET':
            return Response(STORES.retrieve(request.user, store_id))
        elif request.method == 'PATCH':
            logger.info(f"User {request.user.username} patching store {store_id} with data: {request.data}")
            data = STORES.update(request.user, store_id, request.data, user=request.user, request=request)
            return Response(data)
        else:  # DELETE
            logger.info(f"User {request.user.username} deleting store {store_id} ({store.name})")
            STORES.delete(request.user, store_id, user=request.user, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)
    except serializers.ValidationError as e:
        logger.warning(f"Store update validation failed: {e.detail}")
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except RecordProtected as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
    except ObjectDoesNotExist:
        return Response({'error': 'Store not found'}, status=status.HTTP_404_NOT_FOUND)
