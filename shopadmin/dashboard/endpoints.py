"""
Persistence endpoints used by the dashboard screens.

``HttpEndpoint`` talks to the REST API over HTTP; ``LocalEndpoint`` calls the
record services in-process on behalf of the signed-in user. Both expose the
same five operations and raise the same exceptions, so forms and list pages
do not care which one they are given.
"""
import json
import logging

import requests
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.core.serializers.json import DjangoJSONEncoder
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from shopadmin.core.records import RecordProtected, get_resource, validation_errors
from shopadmin.stores.models import Store
from shopadmin.stores.utils import is_store_owner

logger = logging.getLogger('shopadmin.dashboard')

STORES = 'stores'


class EndpointError(Exception):
    """A persistence call failed"""

    def __init__(self, message='Request failed', status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationFailed(EndpointError):
    """The endpoint rejected the submitted values"""

    def __init__(self, errors, message='Validation failed'):
        super().__init__(message, status_code=400, payload=errors)
        self.errors = errors


class RecordNotFound(EndpointError):
    def __init__(self, message='Not found'):
        super().__init__(message, status_code=404)


class RecordInUse(EndpointError):
    """Delete rejected because other records still reference the target"""

    def __init__(self, message='Record is still in use'):
        super().__init__(message, status_code=409)


class HttpEndpoint:
    """REST client for /api/<store_id>/<collection>/ and /api/stores/"""
    supports_parallel = True

    def __init__(self, base_url, token=None, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def collection_url(self, collection, store_id):
        if collection == STORES:
            return f"{self.base_url}/stores/"
        return f"{self.base_url}/{store_id}/{collection}/"

    def record_url(self, collection, store_id, pk):
        return f"{self.collection_url(collection, store_id)}{pk}/"

    def _request(self, method, url, data=None, params=None):
        body = json.dumps(data, cls=DjangoJSONEncoder) if data is not None else None
        try:
            response = self.session.request(method, url, data=body, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error(f"{method} {url} timed out after {self.timeout}s")
            raise EndpointError('Request timed out')
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {str(e)}")
            raise EndpointError('Request failed')

        if response.status_code >= 400:
            raise self._error_for(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _error_for(self, response):
        try:
            payload = response.json()
        except ValueError:
            payload = {'error': response.text[:200]}

        message = payload.get('error') if isinstance(payload, dict) else None
        logger.warning(f"{response.request.method} {response.url} returned {response.status_code}: {payload}")

        if response.status_code == 400:
            return ValidationFailed(validation_errors(payload))
        if response.status_code == 404:
            return RecordNotFound(message or 'Not found')
        if response.status_code == 409:
            return RecordInUse(message or 'Record is still in use')
        return EndpointError(message or f"HTTP {response.status_code}", status_code=response.status_code,
                             payload=payload)

    def list(self, collection, store_id, params=None, include_archived=False):
        params = dict(params or {})
        if include_archived:
            params['include_archived'] = 'true'
        return self._request('GET', self.collection_url(collection, store_id), params=params or None)

    def retrieve(self, collection, store_id, pk):
        return self._request('GET', self.record_url(collection, store_id, pk))

    def create(self, collection, store_id, data):
        return self._request('POST', self.collection_url(collection, store_id), data=data)

    def update(self, collection, store_id, pk, data):
        return self._request('PATCH', self.record_url(collection, store_id, pk), data=data)

    def delete(self, collection, store_id, pk):
        self._request('DELETE', self.record_url(collection, store_id, pk))


class LocalEndpoint:
    """
    Calls the record services directly as ``user``.

    Mutations inside a store require the user to own it, the same rule the
    REST views apply. Calls go through the Django ORM on the request thread,
    so reference datasets are fetched one after another.
    """
    supports_parallel = False

    def __init__(self, user, request=None):
        self.user = user
        self.request = request

    def _scope(self, collection, store_id, write=False):
        if collection == STORES:
            return self.user
        try:
            store = Store.objects.get(pk=store_id)
        except (Store.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound('Store not found')
        if write and not is_store_owner(self.user, store):
            logger.warning(f"User {self.user} attempted to modify {collection} of store {store_id} they do not own")
            raise EndpointError('Unauthorized', status_code=403)
        return store

    def _call(self, operation, *args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except serializers.ValidationError as e:
            raise ValidationFailed(validation_errors(e))
        except (ObjectDoesNotExist, ValueError):
            raise RecordNotFound()
        except RecordProtected as e:
            raise RecordInUse(str(e))

    def list(self, collection, store_id, params=None, include_archived=False):
        scope = self._scope(collection, store_id)
        resource = get_resource(collection)
        if include_archived and collection != STORES:
            include_archived = is_store_owner(self.user, scope)
        return self._call(resource.list, scope, params or {}, include_archived=include_archived)

    def retrieve(self, collection, store_id, pk):
        scope = self._scope(collection, store_id)
        return self._call(get_resource(collection).retrieve, scope, pk)

    def create(self, collection, store_id, data):
        scope = self._scope(collection, store_id, write=True)
        return self._call(get_resource(collection).create, scope, data, user=self.user, request=self.request)

    def update(self, collection, store_id, pk, data):
        scope = self._scope(collection, store_id, write=True)
        return self._call(get_resource(collection).update, scope, pk, data, user=self.user, request=self.request)

    def delete(self, collection, store_id, pk):
        scope = self._scope(collection, store_id, write=True)
        self._call(get_resource(collection).delete, scope, pk, user=self.user, request=self.request)


def user_access_token(user):
    """Access token for ``user``; the remote API must share this project's SIMPLE_JWT signing key"""
    return str(RefreshToken.for_user(user).access_token)


def get_endpoint(request):
    """
    Remote REST API when DASHBOARD_API_BASE_URL is set, in-process services otherwise.
    Both act as the signed-in user: the remote API receives that user's own access token.
    """
    base_url = getattr(settings, 'DASHBOARD_API_BASE_URL', '')
    if base_url:
        return HttpEndpoint(
            base_url,
            token=user_access_token(request.user),
            timeout=getattr(settings, 'DASHBOARD_API_TIMEOUT', 10),
        )
    return LocalEndpoint(request.user, request=request)
