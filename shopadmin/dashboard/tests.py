"""
Tests for the dashboard: form lifecycle, list pages, endpoints and screens
"""
import threading
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.contrib.messages import get_messages
from django.core.files.uploadedfile import SimpleUploadedFile
from django.http import QueryDict
from django.test import SimpleTestCase, TestCase, RequestFactory, override_settings
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from shopadmin.catalog.assets import AssetUploadError
from shopadmin.catalog.models import Billboard
from shopadmin.core.test_utils import TestDataFactory
from shopadmin.dashboard import tokens
from shopadmin.dashboard.aggregation import gather, load_collections
from shopadmin.dashboard.endpoints import (
    EndpointError, HttpEndpoint, LocalEndpoint, RecordInUse, RecordNotFound, ValidationFailed, get_endpoint
)
from shopadmin.dashboard.entities import BILLBOARD, CATEGORY, COLOR, PRODUCT, STORE, get_entity
from shopadmin.dashboard.formatting import format_date, format_price, ordinal
from shopadmin.dashboard.forms import EntityForm, GENERIC_FAILURE
from shopadmin.dashboard.listing import ApiRoute, EntityListPage
from shopadmin.dashboard.navigation import Navigator, Notifier
from shopadmin.dashboard.models import UsedFormToken
from shopadmin.dashboard.states import Idle, Submitting, Confirming, Error
from shopadmin.stores.models import Store


class RecordingNavigator(Navigator):
    def __init__(self):
        self.pushes = []
        self.refreshes = 0

    def push(self, path):
        self.pushes.append(path)

    def refresh(self):
        self.refreshes += 1


class RecordingNotifier(Notifier):
    def __init__(self):
        self.successes = []
        self.errors = []

    def success(self, message):
        self.successes.append(message)

    def error(self, message):
        self.errors.append(message)


class FakeEndpoint:
    """In-memory endpoint recording every call"""
    supports_parallel = False

    def __init__(self, records=None, fail_with=None, failing=(), on_call=None):
        self.records = records or {}
        self.fail_with = fail_with
        self.failing = failing
        self.on_call = on_call
        self.calls = []

    def _record(self, *call):
        self.calls.append(call)
        if self.on_call:
            self.on_call(*call)
        if self.fail_with is not None:
            raise self.fail_with

    def list(self, collection, store_id, params=None, include_archived=False):
        self.calls.append(('list', collection, store_id))
        if collection in self.failing:
            raise EndpointError('Request failed')
        return list(self.records.get(collection, []))

    def retrieve(self, collection, store_id, pk):
        self._record('retrieve', collection, store_id, pk)
        return self.records[collection][0]

    def create(self, collection, store_id, data):
        self._record('create', collection, store_id, data)
        return dict(data, id=42)

    def update(self, collection, store_id, pk, data):
        self._record('update', collection, store_id, pk, data)
        return dict(data, id=int(pk))

    def delete(self, collection, store_id, pk):
        self._record('delete', collection, store_id, pk)


BILLBOARD_RECORD = {
    'id': 5,
    'store_id': 7,
    'label': 'Spring',
    'image_url': 'https://cdn.example.com/spring.png',
    'created_at': '2024-07-04T10:00:00Z',
}


def make_form(entity=BILLBOARD, initial_data=None, endpoint=None, store_id='7'):
    endpoint = endpoint or FakeEndpoint()
    navigator = RecordingNavigator()
    notifier = RecordingNotifier()
    form = EntityForm(entity, store_id, endpoint, navigator, notifier, initial_data=initial_data)
    return form, endpoint, navigator, notifier


class EntityFormSubmitTests(SimpleTestCase):
    """Test create and update through EntityForm"""

    def test_create_billboard(self):
        """Test the Summer Sale billboard: one POST, one navigation, one success toast"""
        form, endpoint, navigator, notifier = make_form()

        saved = form.submit({'label': 'Summer Sale', 'image_url': 'https://host/img.png'})

        self.assertTrue(saved)
        self.assertEqual(endpoint.calls, [
            ('create', 'billboards', '7', {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}),
        ])
        self.assertEqual(navigator.pushes, ['/7/billboards/'])
        self.assertEqual(navigator.refreshes, 1)
        self.assertEqual(notifier.successes, ['Billboard created successfully'])
        self.assertEqual(notifier.errors, [])
        self.assertEqual(form.state, Idle)

    def test_create_texts(self):
        form, _, _, _ = make_form()
        self.assertFalse(form.editing)
        self.assertEqual(form.title, 'Create a Billboard')
        self.assertEqual(form.description, 'Add a new billboard')
        self.assertEqual(form.action_label, 'Create')
        self.assertEqual(form.values, {'label': '', 'image_url': ''})

    def test_edit_texts(self):
        form, _, _, _ = make_form(initial_data=BILLBOARD_RECORD)
        self.assertTrue(form.editing)
        self.assertEqual(form.title, 'Edit Billboard')
        self.assertEqual(form.description, 'Edit your Billboard')
        self.assertEqual(form.action_label, 'Save Changes')
        self.assertEqual(form.values['label'], 'Spring')

    def test_update_keeps_record_id(self):
        """Test edit mode issues one update for the record id it was opened with"""
        form, endpoint, navigator, notifier = make_form(initial_data=BILLBOARD_RECORD)

        saved = form.submit({'label': 'Autumn', 'image_url': 'https://cdn.example.com/autumn.png'})

        self.assertTrue(saved)
        self.assertEqual(len(endpoint.calls), 1)
        operation, collection, store_id, pk, payload = endpoint.calls[0]
        self.assertEqual((operation, collection, store_id, pk), ('update', 'billboards', '7', '5'))
        self.assertNotIn('id', payload)
        self.assertEqual(form.record_id, '5')
        self.assertEqual(navigator.pushes, ['/7/billboards/'])
        self.assertEqual(notifier.successes, ['Billboard updated successfully'])

    def test_validation_failure_blocks_submit(self):
        """Test invalid values give field messages and never reach the endpoint"""
        form, endpoint, navigator, notifier = make_form()

        saved = form.submit({'label': 'ab', 'image_url': 'not a url'})

        self.assertFalse(saved)
        self.assertEqual(endpoint.calls, [])
        self.assertEqual(form.errors['label'], ['Label is required (min 3 characters).'])
        self.assertEqual(form.errors['image_url'], ['Invalid url'])
        self.assertEqual(navigator.pushes, [])
        self.assertEqual(notifier.errors, [])
        self.assertEqual(form.state, Idle)

    def test_failure_keeps_values_and_does_not_navigate(self):
        """Test a failed save shows the generic toast and keeps the form filled in"""
        endpoint = FakeEndpoint(fail_with=EndpointError('Request failed', status_code=500))
        form, _, navigator, notifier = make_form(endpoint=endpoint)
        values = {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}

        saved = form.submit(values)

        self.assertFalse(saved)
        self.assertEqual(notifier.errors, [GENERIC_FAILURE])
        self.assertEqual(notifier.successes, [])
        self.assertEqual(navigator.pushes, [])
        self.assertEqual(navigator.refreshes, 0)
        self.assertEqual(form.values, values)
        self.assertEqual(form.state, Error('Something went wrong.'))
        self.assertFalse(form.submitting)

    def test_server_validation_errors_shown(self):
        endpoint = FakeEndpoint(fail_with=ValidationFailed({'label': ['Already taken']}))
        form, _, _, notifier = make_form(endpoint=endpoint)
        self.assertFalse(form.submit({'label': 'Summer Sale', 'image_url': 'https://host/img.png'}))
        self.assertEqual(form.errors, {'label': ['Already taken']})
        self.assertEqual(notifier.errors, [GENERIC_FAILURE])

    def test_unexpected_exception_releases_submit(self):
        """Test submitting is cleared even when the endpoint raises something unexpected"""
        endpoint = FakeEndpoint(fail_with=RuntimeError('boom'))
        form, _, _, notifier = make_form(endpoint=endpoint)
        values = {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}

        self.assertFalse(form.submit(values))
        self.assertFalse(form.submitting)
        self.assertFalse(form.submit(values))
        self.assertEqual(len(endpoint.calls), 2)
        self.assertEqual(notifier.errors, [GENERIC_FAILURE, GENERIC_FAILURE])

    def test_submitting_during_call(self):
        seen = []
        endpoint = FakeEndpoint(on_call=lambda *call: seen.append(form.state))
        form, _, _, _ = make_form(endpoint=endpoint)
        form.submit({'label': 'Summer Sale', 'image_url': 'https://host/img.png'})
        self.assertEqual(seen, [Submitting])
        self.assertEqual(form.state, Idle)

    def test_reentrant_submit_is_noop(self):
        """Test a submit issued while one is in flight makes no second call"""
        inner = []
        values = {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}
        endpoint = FakeEndpoint(on_call=lambda *call: inner.append(form.submit(values)))
        form, _, navigator, _ = make_form(endpoint=endpoint)

        self.assertTrue(form.submit(values))
        self.assertEqual(inner, [False])
        self.assertEqual(len(endpoint.calls), 1)
        self.assertEqual(len(navigator.pushes), 1)

    def test_concurrent_submit_is_noop(self):
        """Test two rapid submits from different threads result in one call"""
        entered = threading.Event()
        release = threading.Event()

        def block(*call):
            entered.set()
            release.wait(5)

        endpoint = FakeEndpoint(on_call=block)
        form, _, _, _ = make_form(endpoint=endpoint)
        values = {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}
        results = []
        worker = threading.Thread(target=lambda: results.append(form.submit(values)))
        worker.start()
        self.assertTrue(entered.wait(5))

        self.assertTrue(form.submitting)
        self.assertFalse(form.submit(values))

        release.set()
        worker.join(5)
        self.assertEqual(results, [True])
        self.assertEqual(len(endpoint.calls), 1)

    def test_store_created_opens_new_store(self):
        form, endpoint, navigator, notifier = make_form(entity=STORE, store_id=None)
        self.assertTrue(form.submit({'name': 'Corner Shop'}))
        self.assertEqual(endpoint.calls, [('create', 'stores', None, {'name': 'Corner Shop'})])
        self.assertEqual(navigator.pushes, ['/42/'])
        self.assertEqual(notifier.successes, ['Store created.'])

    def test_product_payload(self):
        """Test product values are sent with typed price and image objects"""
        form, endpoint, _, _ = make_form(entity=PRODUCT)
        saved = form.submit({
            'name': 'Linen Shirt',
            'price': '39.9',
            'images': ['https://cdn.example.com/a.png'],
            'category_id': '1',
            'size_id': '2',
            'color_id': '3',
            'is_featured': True,
        })
        self.assertTrue(saved)
        payload = endpoint.calls[0][3]
        self.assertEqual(payload['price'], '39.90')
        self.assertEqual(payload['images'], [{'url': 'https://cdn.example.com/a.png'}])
        self.assertEqual((payload['category_id'], payload['size_id'], payload['color_id']), ('1', '2', '3'))
        self.assertTrue(payload['is_featured'])
        self.assertFalse(payload['is_archived'])


class EntityFormDeleteTests(SimpleTestCase):
    """Test the confirmation-gated delete"""

    def test_delete_requires_confirmation(self):
        form, endpoint, navigator, _ = make_form(initial_data=BILLBOARD_RECORD)
        self.assertFalse(form.confirm_delete())
        self.assertEqual(endpoint.calls, [])
        self.assertEqual(navigator.pushes, [])

    def test_cancelled_confirmation(self):
        form, endpoint, _, _ = make_form(initial_data=BILLBOARD_RECORD)
        self.assertTrue(form.request_delete())
        self.assertEqual(form.state, Confirming)
        form.cancel_delete()
        self.assertEqual(form.state, Idle)
        self.assertFalse(form.confirm_delete())
        self.assertEqual(endpoint.calls, [])

    def test_no_delete_in_create_mode(self):
        form, _, _, _ = make_form()
        self.assertFalse(form.request_delete())
        self.assertFalse(form.confirm_delete())

    def test_confirmed_delete(self):
        form, endpoint, navigator, notifier = make_form(initial_data=BILLBOARD_RECORD)
        form.request_delete()

        self.assertTrue(form.confirm_delete())
        self.assertEqual(endpoint.calls, [('delete', 'billboards', '7', '5')])
        self.assertEqual(navigator.pushes, ['/7/billboards/'])
        self.assertEqual(navigator.refreshes, 1)
        self.assertEqual(notifier.successes, ['Billboard deleted successfully'])
        self.assertEqual(form.state, Idle)

    def test_rejected_delete_gives_guidance(self):
        """Test a delete rejected for integrity reasons advises removing dependents"""
        endpoint = FakeEndpoint(fail_with=RecordInUse('in use'))
        form, _, navigator, notifier = make_form(initial_data=BILLBOARD_RECORD, endpoint=endpoint)
        form.request_delete()

        self.assertFalse(form.confirm_delete())
        self.assertEqual(notifier.errors, ['Make sure you deleted all categories using this billboard first'])
        self.assertEqual(navigator.pushes, [])
        self.assertEqual(form.state, Error('Make sure you deleted all categories using this billboard first'))
        self.assertFalse(form.submitting)

    def test_confirmation_is_single_use(self):
        endpoint = FakeEndpoint(fail_with=RecordInUse('in use'))
        form, _, _, _ = make_form(initial_data=BILLBOARD_RECORD, endpoint=endpoint)
        form.request_delete()
        form.confirm_delete()
        self.assertFalse(form.confirm_delete())
        self.assertEqual(len(endpoint.calls), 1)

    def test_store_delete_returns_to_setup(self):
        store = {'id': 7, 'name': 'Corner Shop'}
        form, endpoint, navigator, notifier = make_form(entity=STORE, initial_data=store)
        form.request_delete()
        self.assertTrue(form.confirm_delete())
        self.assertEqual(endpoint.calls, [('delete', 'stores', '7', '7')])
        self.assertEqual(navigator.pushes, ['/'])
        self.assertEqual(notifier.successes, ['Store deleted.'])


class EntityFormUploadTests(SimpleTestCase):
    """Test uploads are swapped for hosted URLs before validation"""

    def test_billboard_image_replaced_by_url(self):
        form, _, _, _ = make_form()
        uploader = MagicMock(return_value='https://cdn.example.com/hosted.png')

        values = form.attach_uploads({'label': 'Summer Sale', 'image_url': ''}, ['file'], uploader)

        self.assertEqual(values['image_url'], 'https://cdn.example.com/hosted.png')
        uploader.assert_called_once_with('file', folder='store-7')

    def test_product_images_appended(self):
        form, _, _, _ = make_form(entity=PRODUCT)
        urls = iter(['https://cdn.example.com/2.png', 'https://cdn.example.com/3.png'])
        values = form.attach_uploads(
            {'images': ['https://cdn.example.com/1.png']}, ['a', 'b'], lambda f, folder=None: next(urls)
        )
        self.assertEqual(values['images'], [
            'https://cdn.example.com/1.png', 'https://cdn.example.com/2.png', 'https://cdn.example.com/3.png',
        ])

    def test_failed_upload_blocks_submit(self):
        form, _, _, _ = make_form()
        uploader = MagicMock(side_effect=AssetUploadError('Image upload failed'))
        self.assertIsNone(form.attach_uploads({'label': 'Summer Sale'}, ['file'], uploader))
        self.assertEqual(form.errors, {'image_url': ['Image upload failed']})

    def test_entities_without_images_ignore_files(self):
        form, _, _, _ = make_form(entity=COLOR)
        uploader = MagicMock()
        values = {'name': 'Navy', 'value': '#1F2A44'}
        self.assertEqual(form.attach_uploads(values, ['file'], uploader), values)
        uploader.assert_not_called()


class FormSchemaTests(SimpleTestCase):
    """Test the per-entity validation tables"""

    def test_billboard_label_bounds(self):
        _, errors = BILLBOARD.schema.validate({'label': 'x' * 26, 'image_url': 'https://cdn.example.com/a.png'})
        self.assertEqual(errors, {'label': ['Must contain at most 25 character(s).']})

    def test_billboard_image_required(self):
        _, errors = BILLBOARD.schema.validate({'label': 'Summer Sale', 'image_url': ''})
        self.assertEqual(errors, {'image_url': ['Background Image is required.']})

    def test_color_value_rules(self):
        _, errors = COLOR.schema.validate({'name': 'N', 'value': 'navy'})
        self.assertEqual(errors['name'], ['Name is required (min 2 characters).'])
        self.assertEqual(errors['value'], ['String must be a valid hex code'])

        cleaned, errors = COLOR.schema.validate({'name': 'Navy', 'value': '#1F2A44'})
        self.assertEqual(errors, {})
        self.assertEqual(cleaned, {'name': 'Navy', 'value': '#1F2A44'})

    def test_product_rules(self):
        _, errors = PRODUCT.schema.validate({'name': 'Shirt', 'price': '0', 'images': [], 'size_id': '',
                                             'color_id': '3'})
        self.assertEqual(errors['price'], ['Price must be greater than 0.'])
        self.assertEqual(errors['images'], ['Add at least 1 image.'])
        self.assertEqual(errors['category_id'], ['Category is required.'])
        self.assertEqual(errors['size_id'], ['Size is required.'])
        self.assertNotIn('color_id', errors)

    def test_product_defaults(self):
        cleaned, errors = PRODUCT.schema.validate({
            'name': 'Shirt', 'price': '10', 'images': ['https://cdn.example.com/a.png'],
            'category_id': '1', 'size_id': '2', 'color_id': '3',
        })
        self.assertEqual(errors, {})
        self.assertEqual(cleaned['price'], Decimal('10.00'))
        self.assertFalse(cleaned['is_featured'])
        self.assertFalse(cleaned['is_archived'])

    def test_values_from_post(self):
        data = QueryDict(
            'name=+Linen+Shirt+&price=12.50&is_featured=on'
            '&images=https%3A%2F%2Fcdn.example.com%2F1.png%0D%0Ahttps%3A%2F%2Fcdn.example.com%2F2.png'
        )
        values = PRODUCT.schema.values_from_querydict(data)
        self.assertEqual(values['name'], 'Linen Shirt')
        self.assertEqual(values['price'], '12.50')
        self.assertEqual(values['images'], ['https://cdn.example.com/1.png', 'https://cdn.example.com/2.png'])
        self.assertTrue(values['is_featured'])
        self.assertFalse(values['is_archived'])
        self.assertNotIn('category_id', values)


class EntityListPageTests(SimpleTestCase):
    """Test list loading, row mapping, search/sort and the API panel"""

    def product(self, pk, name, price, created_at, archived=False):
        return {
            'id': pk,
            'name': name,
            'price': price,
            'is_featured': False,
            'is_archived': archived,
            'category': {'id': 1, 'name': 'Shirts'},
            'size': {'id': 2, 'name': 'Medium', 'value': 'M'},
            'color': {'id': 3, 'name': 'Navy', 'value': '#1F2A44'},
            'images': [{'id': 1, 'url': 'https://cdn.example.com/a.png'}],
            'created_at': created_at,
        }

    def test_empty_product_list(self):
        """Test zero products render zero rows with "add new" still available"""
        page = EntityListPage(PRODUCT, '7', FakeEndpoint())
        self.assertEqual(page.load(), [])
        self.assertEqual(page.title, 'Products: 0')
        self.assertEqual(page.new_path, '/7/products/new/')

    def test_load_failure_gives_empty_table(self):
        page = EntityListPage(BILLBOARD, '7', FakeEndpoint(failing=('billboards',)))
        self.assertEqual(page.load(), [])
        self.assertEqual(page.title, 'Billboards: 0')

    def test_product_rows(self):
        """Test rows resolve references to display names and format price and date"""
        endpoint = FakeEndpoint(records={'products': [self.product(9, 'Linen Shirt', '1234.5', '2024-07-04T10:00:00Z')]})
        page = EntityListPage(PRODUCT, '7', endpoint)

        row = page.load()[0]

        self.assertEqual(row['id'], '9')
        self.assertEqual(row['category'], 'Shirts')
        self.assertEqual(row['size'], 'Medium')
        self.assertEqual(row['color'], '#1F2A44')
        self.assertEqual(row['price'], '$1,234.50')
        self.assertEqual(row['created_at'], 'July 4th, 2024')
        self.assertEqual(page.edit_path(row), '/7/products/9/')

    def test_category_rows_show_billboard_label(self):
        endpoint = FakeEndpoint(records={'categories': [{
            'id': 3, 'name': 'Shirts', 'billboard_id': 5, 'billboard': {'id': 5, 'label': 'Spring'},
            'created_at': '2024-01-01T00:00:00Z',
        }]})
        row = EntityListPage(CATEGORY, '7', endpoint).load()[0]
        self.assertEqual(row['billboard_label'], 'Spring')
        self.assertEqual(row['created_at'], 'January 1st, 2024')

    def test_search_and_sort(self):
        endpoint = FakeEndpoint(records={'products': [
            self.product(1, 'Linen Shirt', '30.00', '2024-07-02T00:00:00Z'),
            self.product(2, 'Oxford Shirt', '9.50', '2024-07-03T00:00:00Z'),
            self.product(3, 'Canvas Sneaker', '100.00', '2024-07-01T00:00:00Z'),
        ]})
        page = EntityListPage(PRODUCT, '7', endpoint)
        page.load()

        self.assertEqual([r['id'] for r in page.search('SHIRT')], ['1', '2'])
        self.assertEqual([r['id'] for r in page.sort('price')], ['2', '1', '3'])
        self.assertEqual([r['id'] for r in page.sort('created_at', descending=True)], ['2', '1', '3'])
        self.assertEqual([r['id'] for r in page.sort('name')], ['3', '1', '2'])

    def test_api_routes(self):
        page = EntityListPage(BILLBOARD, '7', FakeEndpoint(), origin='https://admin.example.com/')
        self.assertEqual(page.api_routes, [
            ApiRoute('GET', 'public', 'https://admin.example.com/api/7/billboards/'),
            ApiRoute('GET', 'public', 'https://admin.example.com/api/7/billboards/{billboardId}/'),
            ApiRoute('POST', 'admin', 'https://admin.example.com/api/7/billboards/'),
            ApiRoute('PATCH', 'admin', 'https://admin.example.com/api/7/billboards/{billboardId}/'),
            ApiRoute('DELETE', 'admin', 'https://admin.example.com/api/7/billboards/{billboardId}/'),
        ])


class AggregationTests(SimpleTestCase):
    """Test reference datasets are joined with failures replaced by empty lists"""

    def fetchers(self):
        def broken():
            raise EndpointError('Request failed')
        return {
            'categories': lambda: [{'id': 1}],
            'sizes': broken,
            'colors': lambda: [{'id': 3}, {'id': 4}],
        }

    def test_parallel_gather(self):
        result = gather(self.fetchers(), parallel=True)
        self.assertEqual(result, {'categories': [{'id': 1}], 'sizes': [], 'colors': [{'id': 3}, {'id': 4}]})

    def test_sequential_gather(self):
        result = gather(self.fetchers(), parallel=False)
        self.assertEqual(result['sizes'], [])
        self.assertEqual(len(result['colors']), 2)

    def test_parallel_gather_runs_concurrently(self):
        """Test fetches overlap: each one waits for all others to start"""
        barrier = threading.Barrier(3, timeout=5)

        def fetch():
            barrier.wait()
            return ['ok']

        result = gather({'a': fetch, 'b': fetch, 'c': fetch}, parallel=True)
        self.assertEqual(result, {'a': ['ok'], 'b': ['ok'], 'c': ['ok']})

    def test_load_collections(self):
        endpoint = FakeEndpoint(records={'categories': [{'id': 1}]}, failing=('colors',))
        result = load_collections(endpoint, '7', ('categories', 'sizes', 'colors'))
        self.assertEqual(result, {'categories': [{'id': 1}], 'sizes': [], 'colors': []})
        self.assertEqual([c[1] for c in endpoint.calls], ['categories', 'sizes', 'colors'])

    def test_nothing_to_load(self):
        self.assertEqual(gather({}), {})


class FormattingTests(SimpleTestCase):
    def test_ordinals(self):
        self.assertEqual(
            [ordinal(d) for d in (1, 2, 3, 4, 11, 12, 13, 21, 22, 23, 31)],
            ['1st', '2nd', '3rd', '4th', '11th', '12th', '13th', '21st', '22nd', '23rd', '31st'],
        )

    @override_settings(TIME_ZONE='UTC')
    def test_format_date(self):
        self.assertEqual(format_date('2024-07-04T10:00:00Z'), 'July 4th, 2024')
        self.assertEqual(format_date('2023-12-22T23:00:00+00:00'), 'December 22nd, 2023')
        self.assertEqual(format_date(None), '')

    def test_format_price(self):
        self.assertEqual(format_price('1234.5'), '$1,234.50')
        self.assertEqual(format_price(Decimal('9.99')), '$9.99')
        self.assertEqual(format_price(''), '')


class HttpEndpointTests(SimpleTestCase):
    """Test the REST client maps statuses to endpoint exceptions"""

    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.endpoint = HttpEndpoint('https://shop.example.com/api/', token='abc', session=self.session)

    def respond(self, status_code, payload=None):
        response = MagicMock(status_code=status_code, content=b'{}' if payload is not None else b'')
        response.json.return_value = payload
        response.request.method = 'GET'
        self.session.request.return_value = response
        return response

    def test_headers(self):
        self.assertEqual(self.session.headers['Authorization'], 'Bearer abc')
        self.assertEqual(self.session.headers['Content-Type'], 'application/json')

    def test_create_posts_json(self):
        self.respond(201, {'id': 1, 'label': 'Summer Sale'})

        record = self.endpoint.create('billboards', '7', {'label': 'Summer Sale', 'price': Decimal('9.99')})

        self.assertEqual(record, {'id': 1, 'label': 'Summer Sale'})
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('POST', 'https://shop.example.com/api/7/billboards/'))
        self.assertEqual(kwargs['data'], '{"label": "Summer Sale", "price": "9.99"}')

    def test_update_and_delete_urls(self):
        self.respond(200, {'id': 5})
        self.endpoint.update('billboards', '7', '5', {'label': 'Autumn'})
        self.assertEqual(self.session.request.call_args[0], ('PATCH', 'https://shop.example.com/api/7/billboards/5/'))

        self.respond(204)
        self.assertIsNone(self.endpoint.delete('billboards', '7', '5'))
        self.assertEqual(self.session.request.call_args[0], ('DELETE', 'https://shop.example.com/api/7/billboards/5/'))

    def test_store_urls(self):
        self.respond(200, [])
        self.endpoint.list('stores', None)
        self.assertEqual(self.session.request.call_args[0], ('GET', 'https://shop.example.com/api/stores/'))

    def test_list_include_archived(self):
        self.respond(200, [])
        self.endpoint.list('products', '7', include_archived=True)
        self.assertEqual(self.session.request.call_args[1]['params'], {'include_archived': 'true'})

    def test_conflict_is_record_in_use(self):
        self.respond(409, {'error': 'Make sure you deleted all categories using this billboard first'})
        with self.assertRaises(RecordInUse) as ctx:
            self.endpoint.delete('billboards', '7', '5')
        self.assertEqual(ctx.exception.message, 'Make sure you deleted all categories using this billboard first')

    def test_bad_request_is_validation_failure(self):
        self.respond(400, {'label': ['Ensure this field has no more than 200 characters.']})
        with self.assertRaises(ValidationFailed) as ctx:
            self.endpoint.create('billboards', '7', {'label': 'x'})
        self.assertEqual(ctx.exception.errors, {'label': ['Ensure this field has no more than 200 characters.']})

    def test_not_found(self):
        self.respond(404, {'error': 'Not found'})
        with self.assertRaises(RecordNotFound):
            self.endpoint.retrieve('billboards', '7', '5')

    def test_forbidden(self):
        self.respond(403, {'error': 'Unauthorized'})
        with self.assertRaises(EndpointError) as ctx:
            self.endpoint.create('billboards', '7', {})
        self.assertEqual(ctx.exception.status_code, 403)

    def test_network_error(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError('down')
        with self.assertRaises(EndpointError):
            self.endpoint.list('billboards', '7')

    @override_settings(DASHBOARD_API_BASE_URL='')
    def test_get_endpoint_local(self):
        request = RequestFactory().get('/')
        request.user = MagicMock()
        endpoint = get_endpoint(request)
        self.assertIsInstance(endpoint, LocalEndpoint)
        self.assertFalse(endpoint.supports_parallel)


@override_settings(DASHBOARD_API_BASE_URL='https://shop.example.com/api')
class RemoteEndpointTests(TestCase):
    """Test the remote API is called with the signed-in user's own credentials"""

    def endpoint_for(self, user):
        request = RequestFactory().get('/')
        request.user = user
        return get_endpoint(request)

    def test_remote_endpoint(self):
        endpoint = self.endpoint_for(TestDataFactory.create_user())
        self.assertIsInstance(endpoint, HttpEndpoint)
        self.assertTrue(endpoint.supports_parallel)

    def test_each_user_gets_own_token(self):
        alice = TestDataFactory.create_user()
        bob = TestDataFactory.create_user()

        alice_header = self.endpoint_for(alice).session.headers['Authorization']
        bob_header = self.endpoint_for(bob).session.headers['Authorization']

        self.assertNotEqual(alice_header, bob_header)
        self.assertEqual(str(AccessToken(alice_header.split(' ', 1)[1])['user_id']), str(alice.id))
        self.assertEqual(str(AccessToken(bob_header.split(' ', 1)[1])['user_id']), str(bob.id))

    def test_token_sees_only_own_stores(self):
        alice = TestDataFactory.create_user()
        alice_store = TestDataFactory.create_store(owner=alice)
        TestDataFactory.create_store()

        header = self.endpoint_for(alice).session.headers['Authorization']
        response = APIClient().get('/api/stores/', HTTP_AUTHORIZATION=header)

        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['id'] for s in response.json()], [alice_store.id])


class LocalEndpointTests(TestCase):
    """Test the in-process endpoint against the record services"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.endpoint = LocalEndpoint(self.user)

    def test_create_and_list(self):
        record = self.endpoint.create(
            'billboards', str(self.store.id), {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/a.png'}
        )
        self.assertEqual(record['label'], 'Summer Sale')
        listed = self.endpoint.list('billboards', str(self.store.id))
        self.assertEqual([b['id'] for b in listed], [record['id']])

    def test_validation_failure(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.endpoint.create('billboards', str(self.store.id), {'label': 'Summer Sale', 'image_url': 'nope'})
        self.assertIn('image_url', ctx.exception.errors)

    def test_non_owner_cannot_write(self):
        other_store = TestDataFactory.create_store()
        with self.assertRaises(EndpointError) as ctx:
            self.endpoint.create('sizes', str(other_store.id), {'name': 'Small', 'value': 'S'})
        self.assertEqual(ctx.exception.status_code, 403)

    def test_unknown_store(self):
        with self.assertRaises(RecordNotFound):
            self.endpoint.list('sizes', '999999')

    def test_record_of_other_store(self):
        billboard = TestDataFactory.create_billboard(TestDataFactory.create_store(owner=self.user))
        with self.assertRaises(RecordNotFound):
            self.endpoint.retrieve('billboards', str(self.store.id), str(billboard.id))

    def test_stores_scoped_to_user(self):
        TestDataFactory.create_store(name='Not mine')
        self.assertEqual([s['id'] for s in self.endpoint.list('stores', None)], [self.store.id])

    def test_rejected_delete_keeps_row(self):
        """Test a billboard still used by a category stays in the next list fetch"""
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        TestDataFactory.create_category(self.store, billboard=billboard)
        record = self.endpoint.retrieve('billboards', str(self.store.id), str(billboard.id))
        form, _, navigator, notifier = make_form(initial_data=record, endpoint=self.endpoint,
                                                 store_id=self.store.id)
        form.request_delete()

        self.assertFalse(form.confirm_delete())
        self.assertEqual(notifier.errors, ['Make sure you deleted all categories using this billboard first'])
        self.assertEqual(navigator.pushes, [])

        page = EntityListPage(BILLBOARD, self.store.id, self.endpoint)
        self.assertIn(str(billboard.id), [row['id'] for row in page.load()])


class DashboardViewTests(TestCase):
    """Test the server-rendered screens"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user, name='Corner Shop')
        self.client.force_login(self.user)

    def messages(self, response):
        return [str(m) for m in get_messages(response.wsgi_request)]

    def submit_form(self, url, data):
        """Render the form at ``url`` and post ``data`` with the token it was rendered with"""
        token = self.client.get(url).context['form_token']
        return self.client.post(url, dict(data, form_token=token))

    def test_login_required(self):
        self.client.logout()
        response = self.client.get(f'/{self.store.id}/billboards/')
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith('/accounts/login/'))

    def test_setup_redirects_to_first_store(self):
        response = self.client.get('/')
        self.assertRedirects(response, f'/{self.store.id}/', fetch_redirect_response=False)

    def test_setup_without_store_asks_for_one(self):
        self.client.force_login(TestDataFactory.create_user())
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Create store')

    def test_setup_creates_store(self):
        user = TestDataFactory.create_user()
        self.client.force_login(user)
        response = self.submit_form('/', {'name': 'Second Shop'})
        store = Store.objects.get(owner=user)
        self.assertRedirects(response, f'/{store.id}/', fetch_redirect_response=False)
        self.assertEqual(self.messages(response), ['Store created.'])

    def test_overview_counts(self):
        TestDataFactory.create_product(self.store)
        response = self.client.get(f'/{self.store.id}/')
        self.assertEqual(response.status_code, 200)
        counts = {card['entity'].collection: card['count'] for card in response.context['cards']}
        self.assertEqual(counts, {'billboards': 1, 'categories': 1, 'sizes': 1, 'colors': 1, 'products': 1})

    def test_other_users_store_not_found(self):
        other_store = TestDataFactory.create_store(name='Not mine')
        self.assertEqual(self.client.get(f'/{other_store.id}/billboards/').status_code, 404)
        self.assertEqual(self.client.get(f'/{other_store.id}/settings/').status_code, 404)

    def test_unknown_collection(self):
        self.assertEqual(self.client.get(f'/{self.store.id}/orders/').status_code, 404)

    def test_billboard_list(self):
        TestDataFactory.create_billboard(self.store, label='Spring')
        response = self.client.get(f'/{self.store.id}/billboards/')
        self.assertContains(response, 'Billboards: 1')
        self.assertContains(response, 'Spring')
        self.assertContains(response, f'http://testserver/api/{self.store.id}/billboards/{{billboardId}}/')

    def test_list_search(self):
        TestDataFactory.create_billboard(self.store, label='Spring')
        TestDataFactory.create_billboard(self.store, label='Summer')
        response = self.client.get(f'/{self.store.id}/billboards/', {'q': 'sum'})
        self.assertEqual(len(response.context['table']), 1)
        self.assertEqual(response.context['table'][0]['cells'][0], 'Summer')

    def test_empty_product_list(self):
        response = self.client.get(f'/{self.store.id}/products/')
        self.assertContains(response, 'Products: 0')
        self.assertContains(response, 'No results.')
        self.assertContains(response, f'/{self.store.id}/products/new/')
        self.assertEqual(self.messages(response), [])

    def test_archived_products_listed_for_owner(self):
        TestDataFactory.create_product(self.store, name='Old Shirt', is_archived=True)
        response = self.client.get(f'/{self.store.id}/products/')
        self.assertContains(response, 'Products: 1')

    def test_create_billboard(self):
        response = self.submit_form(
            f'/{self.store.id}/billboards/new/',
            {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png'}
        )
        self.assertRedirects(response, f'/{self.store.id}/billboards/', fetch_redirect_response=False)
        self.assertTrue(Billboard.objects.filter(store=self.store, label='Summer Sale').exists())
        self.assertEqual(self.messages(response), ['Billboard created successfully'])

    def test_create_billboard_host_without_domain(self):
        """Test a URL accepted by the form is accepted when saved"""
        response = self.submit_form(
            f'/{self.store.id}/billboards/new/', {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}
        )
        self.assertRedirects(response, f'/{self.store.id}/billboards/', fetch_redirect_response=False)
        self.assertEqual(Billboard.objects.get(store=self.store).image_url, 'https://host/img.png')
        self.assertEqual(self.messages(response), ['Billboard created successfully'])

    def test_double_submit_creates_one_record(self):
        """Test posting the same rendered form twice saves once"""
        url = f'/{self.store.id}/billboards/new/'
        data = {
            'label': 'Summer Sale',
            'image_url': 'https://host/img.png',
            'form_token': self.client.get(url).context['form_token'],
        }

        first = self.client.post(url, data)
        second = self.client.post(url, data)

        self.assertRedirects(first, f'/{self.store.id}/billboards/', fetch_redirect_response=False)
        self.assertRedirects(second, f'/{self.store.id}/billboards/', fetch_redirect_response=False)
        self.assertEqual(Billboard.objects.filter(store=self.store).count(), 1)
        self.assertEqual(self.messages(second), [])

    def test_submit_without_form_token(self):
        response = self.client.post(
            f'/{self.store.id}/billboards/new/', {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Summer Sale')
        self.assertEqual(self.messages(response), ['This form has expired. Please submit it again.'])
        self.assertFalse(Billboard.objects.exists())

    def test_form_token_of_other_user_rejected(self):
        token = tokens.issue_form_token(TestDataFactory.create_user())
        response = self.client.post(
            f'/{self.store.id}/billboards/new/',
            {'label': 'Summer Sale', 'image_url': 'https://host/img.png', 'form_token': token}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Billboard.objects.exists())

    def test_failed_validation_issues_new_token(self):
        url = f'/{self.store.id}/billboards/new/'
        response = self.submit_form(url, {'label': 'ab', 'image_url': ''})
        self.assertEqual(response.status_code, 200)

        response = self.client.post(url, {
            'label': 'Summer Sale', 'image_url': 'https://host/img.png', 'form_token': response.context['form_token'],
        })
        self.assertEqual(response.status_code, 302)
        self.assertEqual(Billboard.objects.count(), 1)

    def test_create_billboard_invalid(self):
        response = self.submit_form(f'/{self.store.id}/billboards/new/', {'label': 'ab', 'image_url': ''})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Label is required (min 3 characters).')
        self.assertFalse(Billboard.objects.exists())

    @patch('shopadmin.catalog.assets.upload_image')
    def test_create_billboard_with_upload(self, mock_upload):
        mock_upload.return_value = 'https://cdn.example.com/hosted.png'
        upload = SimpleUploadedFile('banner.png', b'data', content_type='image/png')
        response = self.submit_form(
            f'/{self.store.id}/billboards/new/', {'label': 'Summer Sale', 'image_url': '', 'upload': upload}
        )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(Billboard.objects.get(store=self.store).image_url, 'https://cdn.example.com/hosted.png')

    def test_edit_billboard_keeps_id(self):
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        response = self.client.get(f'/{self.store.id}/billboards/{billboard.id}/')
        self.assertContains(response, 'Edit Billboard')

        response = self.submit_form(
            f'/{self.store.id}/billboards/{billboard.id}/',
            {'label': 'Autumn', 'image_url': billboard.image_url}
        )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(Billboard.objects.get(pk=billboard.id).label, 'Autumn')
        self.assertEqual(Billboard.objects.count(), 1)
        self.assertEqual(self.messages(response), ['Billboard updated successfully'])

    def test_edit_unknown_record(self):
        response = self.client.get(f'/{self.store.id}/billboards/999999/')
        self.assertEqual(response.status_code, 404)

    def test_category_form_offers_store_billboards(self):
        TestDataFactory.create_billboard(self.store, label='Spring')
        TestDataFactory.create_billboard(TestDataFactory.create_store(), label='Elsewhere')
        response = self.client.get(f'/{self.store.id}/categories/new/')
        self.assertContains(response, 'Spring')
        self.assertNotContains(response, 'Elsewhere')

    def test_create_product(self):
        category = TestDataFactory.create_category(self.store)
        size = TestDataFactory.create_size(self.store)
        color = TestDataFactory.create_color(self.store)
        response = self.submit_form(f'/{self.store.id}/products/new/', {
            'name': 'Linen Shirt',
            'price': '39.90',
            'images': 'https://cdn.example.com/1.png\nhttps://cdn.example.com/2.png',
            'category_id': str(category.id),
            'size_id': str(size.id),
            'color_id': str(color.id),
            'is_featured': 'on',
        })
        self.assertRedirects(response, f'/{self.store.id}/products/', fetch_redirect_response=False)
        product = self.store.products.get()
        self.assertTrue(product.is_featured)
        self.assertEqual(product.images.count(), 2)

    def test_delete_confirmation_page(self):
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        response = self.client.get(f'/{self.store.id}/billboards/{billboard.id}/delete/')
        self.assertContains(response, 'Are you sure?')
        self.assertTrue(Billboard.objects.filter(pk=billboard.id).exists())

    def test_delete_without_confirmation_ignored(self):
        billboard = TestDataFactory.create_billboard(self.store)
        response = self.client.post(f'/{self.store.id}/billboards/{billboard.id}/delete/')
        self.assertRedirects(response, f'/{self.store.id}/billboards/{billboard.id}/', fetch_redirect_response=False)
        self.assertTrue(Billboard.objects.filter(pk=billboard.id).exists())

    def test_confirmed_delete(self):
        billboard = TestDataFactory.create_billboard(self.store)
        response = self.client.post(f'/{self.store.id}/billboards/{billboard.id}/delete/', {'confirm': '1'})
        self.assertRedirects(response, f'/{self.store.id}/billboards/', fetch_redirect_response=False)
        self.assertFalse(Billboard.objects.filter(pk=billboard.id).exists())
        self.assertEqual(self.messages(response), ['Billboard deleted successfully'])

    def test_delete_in_use_shows_guidance(self):
        category = TestDataFactory.create_category(self.store)
        response = self.client.post(
            f'/{self.store.id}/billboards/{category.billboard_id}/delete/', {'confirm': '1'}
        )
        self.assertRedirects(
            response, f'/{self.store.id}/billboards/{category.billboard_id}/', fetch_redirect_response=False
        )
        self.assertTrue(Billboard.objects.filter(pk=category.billboard_id).exists())
        self.assertEqual(self.messages(response), ['Make sure you deleted all categories using this billboard first'])

    def test_store_settings_rename(self):
        response = self.submit_form(f'/{self.store.id}/settings/', {'name': 'Renamed Shop'})
        self.assertRedirects(response, f'/{self.store.id}/settings/', fetch_redirect_response=False)
        self.store.refresh_from_db()
        self.assertEqual(self.store.name, 'Renamed Shop')

    def test_store_delete_blocked_by_records(self):
        TestDataFactory.create_product(self.store)
        response = self.client.post(f'/{self.store.id}/settings/delete/', {'confirm': '1'})
        self.assertRedirects(response, f'/{self.store.id}/settings/', fetch_redirect_response=False)
        self.assertTrue(Store.objects.filter(pk=self.store.id).exists())
        self.assertEqual(self.messages(response), ['Make sure you removed all products and categories first.'])

    def test_store_delete(self):
        response = self.client.post(f'/{self.store.id}/settings/delete/', {'confirm': '1'})
        self.assertRedirects(response, '/', fetch_redirect_response=False)
        self.assertFalse(Store.objects.filter(pk=self.store.id).exists())

    @patch('shopadmin.catalog.assets.upload_image')
    def test_upload_returns_url(self, mock_upload):
        mock_upload.return_value = 'https://cdn.example.com/hosted.png'
        upload = SimpleUploadedFile('banner.png', b'data', content_type='image/png')
        response = self.client.post(f'/{self.store.id}/uploads/', {'file': upload})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'url': 'https://cdn.example.com/hosted.png'})
        self.assertEqual(mock_upload.call_args[1]['folder'], f'store-{self.store.id}')

    @patch('shopadmin.catalog.assets.upload_image')
    def test_upload_failure(self, mock_upload):
        mock_upload.side_effect = AssetUploadError('Image upload failed')
        upload = SimpleUploadedFile('banner.png', b'data', content_type='image/png')
        response = self.client.post(f'/{self.store.id}/uploads/', {'file': upload})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Image upload failed'})

    def test_upload_without_file(self):
        response = self.client.post(f'/{self.store.id}/uploads/')
        self.assertEqual(response.status_code, 400)


class EntityRegistryTests(SimpleTestCase):
    def test_lookup(self):
        self.assertIs(get_entity('billboards'), BILLBOARD)
        with self.assertRaises(LookupError):
            get_entity('orders')

    def test_toasts(self):
        self.assertEqual(CATEGORY.saved_message(False), 'Category created successfully')
        self.assertEqual(CATEGORY.saved_message(True), 'Category updated successfully')
        self.assertEqual(CATEGORY.deleted_message, 'Category deleted successfully')
        self.assertEqual(CATEGORY.delete_guidance, 'Make sure you deleted all products using this category first')


class FormTokenTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_token_is_single_use(self):
        token = tokens.issue_form_token(self.user)
        self.assertTrue(tokens.consume_form_token(self.user, token))
        self.assertFalse(tokens.consume_form_token(self.user, token))
        self.assertEqual(UsedFormToken.objects.count(), 1)

    def test_tokens_are_independent(self):
        self.assertTrue(tokens.consume_form_token(self.user, tokens.issue_form_token(self.user)))
        self.assertTrue(tokens.consume_form_token(self.user, tokens.issue_form_token(self.user)))

    def test_untrusted_tokens(self):
        token = tokens.issue_form_token(self.user)
        for bad in ('', None, token + 'x'):
            with self.assertRaises(tokens.InvalidFormToken):
                tokens.consume_form_token(self.user, bad)
        with self.assertRaises(tokens.InvalidFormToken):
            tokens.consume_form_token(TestDataFactory.create_user(), token)
        self.assertFalse(UsedFormToken.objects.exists())
