"""
Tests for the store-scoped catalog API, the asset host client and seeding
"""
import io
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from PIL import Image as PILImage
from rest_framework import status
from rest_framework.test import APIClient

from shopadmin.catalog import assets
from shopadmin.catalog.models import Billboard, Category, Color, Product, Image
from shopadmin.core.models import AuditLog
from shopadmin.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopadmin.stores.models import Store


def png_upload(name='banner.png', size=(4, 4)):
    buffer = io.BytesIO()
    PILImage.new('RGB', size, color='red').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class BillboardAPITests(TestCase):
    """Test billboard CRUD, tenancy and protected deletes"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.url = f'/api/{self.store.id}/billboards/'

    def test_create_billboard(self):
        """Test creating a billboard with label and image URL"""
        response = self.client.post(
            self.url, {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['label'], 'Summer Sale')
        self.assertEqual(response.data['store_id'], self.store.id)
        self.assertTrue(Billboard.objects.filter(store=self.store, label='Summer Sale').exists())

    def test_create_billboard_host_without_domain(self):
        """Test the API accepts the same image URLs as the dashboard form"""
        response = self.client.post(
            self.url, {'label': 'Summer Sale', 'image_url': 'https://host/img.png'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['image_url'], 'https://host/img.png')

    def test_create_billboard_invalid_url(self):
        response = self.client.post(self.url, {'label': 'Summer Sale', 'image_url': 'not a url'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual([str(m) for m in response.data['image_url']], ['Invalid url'])

    def test_create_billboard_ftp_url_rejected(self):
        response = self.client.post(
            self.url, {'label': 'Summer Sale', 'image_url': 'ftp://host/img.png'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_store_in_payload_is_ignored(self):
        """Test the store always comes from the URL"""
        other_store = TestDataFactory.create_store()
        response = self.client.post(
            self.url,
            {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png', 'store': other_store.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Billboard.objects.get(pk=response.data['id']).store, self.store)

    def test_list_is_public(self):
        """Test anyone can list and read the billboards of a store"""
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        anonymous = APIClient()

        response = anonymous.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['label'] for b in response.data], ['Spring'])

        response = anonymous.get(f'{self.url}{billboard.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['label'], 'Spring')

    def test_list_newest_first_and_searchable(self):
        TestDataFactory.create_billboard(self.store, label='Spring')
        TestDataFactory.create_billboard(self.store, label='Summer')
        response = self.client.get(self.url)
        self.assertEqual([b['label'] for b in response.data], ['Summer', 'Spring'])

        response = self.client.get(self.url, {'search': 'spr'})
        self.assertEqual([b['label'] for b in response.data], ['Spring'])

    def test_anonymous_create_rejected(self):
        response = APIClient().post(self.url, {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_non_owner_create_forbidden(self):
        """Test only the owner of a store can add records to it"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(
            self.url, {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Billboard.objects.exists())

    def test_patch_keeps_identifier(self):
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        response = self.client.patch(f'{self.url}{billboard.id}/', {'label': 'Autumn'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], billboard.id)
        billboard.refresh_from_db()
        self.assertEqual(billboard.label, 'Autumn')

    def test_record_of_other_store_not_found(self):
        """Test a record is only reachable under its own store"""
        other_store = TestDataFactory.create_store(owner=self.user)
        billboard = TestDataFactory.create_billboard(other_store)
        response = self.client.get(f'{self.url}{billboard.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'{self.url}{billboard.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_store_not_found(self):
        response = self.client.get('/api/999999/billboards/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_billboard(self):
        billboard = TestDataFactory.create_billboard(self.store)
        response = self.client.delete(f'{self.url}{billboard.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Billboard.objects.filter(pk=billboard.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Billboard').exists())

    def test_delete_billboard_in_use_rejected(self):
        """Test a billboard used by a category cannot be deleted and stays listed"""
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        TestDataFactory.create_category(self.store, billboard=billboard)

        response = self.client.delete(f'{self.url}{billboard.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Make sure you deleted all categories using this billboard first')

        response = self.client.get(self.url)
        self.assertIn(billboard.id, [b['id'] for b in response.data])


class CategoryAPITests(TestCase):
    """Test category references stay inside the store"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.url = f'/api/{self.store.id}/categories/'

    def test_create_category(self):
        billboard = TestDataFactory.create_billboard(self.store, label='Spring')
        response = self.client.post(self.url, {'name': 'Shirts', 'billboard_id': billboard.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['billboard']['label'], 'Spring')

    def test_billboard_of_other_store_rejected(self):
        """Test a category cannot reference a billboard of another store"""
        other_billboard = TestDataFactory.create_billboard(TestDataFactory.create_store())
        response = self.client.post(self.url, {'name': 'Shirts', 'billboard_id': other_billboard.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('billboard_id', response.data)
        self.assertFalse(Category.objects.exists())

    def test_filter_by_billboard(self):
        first = TestDataFactory.create_billboard(self.store)
        second = TestDataFactory.create_billboard(self.store)
        TestDataFactory.create_category(self.store, name='Shirts', billboard=first)
        TestDataFactory.create_category(self.store, name='Shoes', billboard=second)
        response = self.client.get(self.url, {'billboard_id': second.id})
        self.assertEqual([c['name'] for c in response.data], ['Shoes'])

    def test_delete_category_in_use_rejected(self):
        product = TestDataFactory.create_product(self.store)
        response = self.client.delete(f'{self.url}{product.category_id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Make sure you deleted all products using this category first')


class SizeColorAPITests(TestCase):
    """Test sizes and colors"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_size(self):
        response = self.client.post(f'/api/{self.store.id}/sizes/', {'name': 'Small', 'value': 'S'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['value'], 'S')

    def test_create_color(self):
        response = self.client.post(
            f'/api/{self.store.id}/colors/', {'name': 'Navy', 'value': '#1F2A44'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_color_value_must_be_hex(self):
        response = self.client.post(f'/api/{self.store.id}/colors/', {'name': 'Navy', 'value': 'navy'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual([str(m) for m in response.data['value']], ['String must be a valid hex code'])
        self.assertFalse(Color.objects.exists())

    def test_color_hex_lengths(self):
        """Test #RGB, #RGBA, #RRGGBB and #RRGGBBAA are accepted, other lengths are not"""
        for value in ('#abc', '#abcd', '#1F2A44', '#1F2A44FF'):
            response = self.client.post(
                f'/api/{self.store.id}/colors/', {'name': 'Navy', 'value': value}, format='json'
            )
            self.assertEqual(response.status_code, status.HTTP_201_CREATED, value)

        for value in ('#abcde', '#1F2A44F'):
            response = self.client.post(
                f'/api/{self.store.id}/colors/', {'name': 'Navy', 'value': value}, format='json'
            )
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, value)
        self.assertEqual(Color.objects.count(), 4)

    def test_delete_size_in_use_rejected(self):
        product = TestDataFactory.create_product(self.store)
        response = self.client.delete(f'/api/{self.store.id}/sizes/{product.size_id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)


class ProductAPITests(TestCase):
    """Test products: images, price, filters and archiving"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.url = f'/api/{self.store.id}/products/'
        self.category = TestDataFactory.create_category(self.store, name='Shirts')
        self.size = TestDataFactory.create_size(self.store)
        self.color = TestDataFactory.create_color(self.store)

    def product_data(self, **overrides):
        data = {
            'name': 'Linen Shirt',
            'price': '39.90',
            'category_id': self.category.id,
            'size_id': self.size.id,
            'color_id': self.color.id,
            'images': [{'url': 'https://cdn.example.com/a.png'}, {'url': 'https://cdn.example.com/b.png'}],
            'is_featured': True,
        }
        data.update(overrides)
        return data

    def test_create_product(self):
        """Test creating a product stores its image URLs"""
        response = self.client.post(self.url, self.product_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.price, Decimal('39.90'))
        self.assertEqual([i.url for i in product.images.all()], ['https://cdn.example.com/a.png', 'https://cdn.example.com/b.png'])
        self.assertEqual(response.data['category'], {'id': self.category.id, 'name': 'Shirts'})
        self.assertEqual(response.data['color']['value'], '#000000')

    def test_product_requires_an_image(self):
        response = self.client.post(self.url, self.product_data(images=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('images', response.data)

    def test_price_must_be_positive(self):
        response = self.client.post(self.url, self.product_data(price='0'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)

    def test_reference_of_other_store_rejected(self):
        other_color = TestDataFactory.create_color(TestDataFactory.create_store())
        response = self.client.post(self.url, self.product_data(color_id=other_color.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('color_id', response.data)

    def test_update_replaces_images(self):
        product = TestDataFactory.create_product(self.store, images=2)
        response = self.client.patch(
            f'{self.url}{product.id}/', {'images': [{'url': 'https://cdn.example.com/new.png'}]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i.url for i in product.images.all()], ['https://cdn.example.com/new.png'])

    def test_update_without_images_keeps_them(self):
        product = TestDataFactory.create_product(self.store, images=2)
        response = self.client.patch(f'{self.url}{product.id}/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(product.images.count(), 2)

    def test_filters(self):
        """Test storefront filters on category, color, size and featured"""
        shoes = TestDataFactory.create_category(self.store, name='Shoes')
        red = TestDataFactory.create_color(self.store, name='Red', value='#FF0000')
        shirt = TestDataFactory.create_product(self.store, name='Shirt', category=self.category, size=self.size,
                                               color=self.color, is_featured=True)
        sneaker = TestDataFactory.create_product(self.store, name='Sneaker', category=shoes, size=self.size,
                                                 color=red)

        response = self.client.get(self.url, {'category_id': shoes.id})
        self.assertEqual([p['id'] for p in response.data], [sneaker.id])
        response = self.client.get(self.url, {'color_id': self.color.id})
        self.assertEqual([p['id'] for p in response.data], [shirt.id])
        response = self.client.get(self.url, {'size_id': self.size.id})
        self.assertEqual({p['id'] for p in response.data}, {shirt.id, sneaker.id})
        response = self.client.get(self.url, {'is_featured': 'true'})
        self.assertEqual([p['id'] for p in response.data], [shirt.id])

    def test_invalid_filter_rejected(self):
        response = self.client.get(self.url, {'category_id': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_archived_hidden_from_public(self):
        """Test archived products are only listed for the owner on request"""
        visible = TestDataFactory.create_product(self.store, name='Visible')
        archived = TestDataFactory.create_product(self.store, name='Old', is_archived=True)

        response = APIClient().get(self.url, {'include_archived': 'true'})
        self.assertEqual([p['id'] for p in response.data], [visible.id])

        response = self.client.get(self.url)
        self.assertEqual([p['id'] for p in response.data], [visible.id])

        response = self.client.get(self.url, {'include_archived': 'true'})
        self.assertEqual({p['id'] for p in response.data}, {visible.id, archived.id})

    def test_delete_product_removes_images(self):
        product = TestDataFactory.create_product(self.store, images=2)
        response = self.client.delete(f'{self.url}{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Image.objects.filter(product_id=product.id).exists())


class AssetUploadTests(TestCase):
    """Test the asset host client"""

    def setUp(self):
        patcher = patch.multiple(
            assets,
            ASSET_UPLOAD_URL='https://assets.example.com/upload',
            ASSET_UPLOAD_PRESET='dashboard',
            ASSET_API_KEY='',
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch('shopadmin.catalog.assets.requests.post')
    def test_upload_returns_secure_url(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        mock_post.return_value.json.return_value = {
            'secure_url': 'https://cdn.example.com/banner.png',
            'url': 'http://cdn.example.com/banner.png',
        }

        url = assets.upload_image(png_upload(), folder='store-1')

        self.assertEqual(url, 'https://cdn.example.com/banner.png')
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://assets.example.com/upload')
        self.assertEqual(kwargs['data'], {'upload_preset': 'dashboard', 'folder': 'store-1'})
        self.assertIn('file', kwargs['files'])

    @patch('shopadmin.catalog.assets.requests.post')
    def test_rejected_upload_raises(self, mock_post):
        mock_post.return_value = MagicMock(status_code=500, text='boom')
        with self.assertRaises(assets.AssetUploadError):
            assets.upload_image(png_upload())

    @patch('shopadmin.catalog.assets.requests.post')
    def test_network_error_raises(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        with self.assertRaises(assets.AssetUploadError):
            assets.upload_image(png_upload())

    @patch('shopadmin.catalog.assets.requests.post')
    def test_not_an_image(self, mock_post):
        upload = SimpleUploadedFile('notes.png', b'plain text', content_type='image/png')
        with self.assertRaises(assets.AssetUploadError):
            assets.upload_image(upload)
        mock_post.assert_not_called()

    @patch('shopadmin.catalog.assets.requests.post')
    def test_too_large(self, mock_post):
        with patch.object(assets, 'ASSET_MAX_UPLOAD_BYTES', 10):
            with self.assertRaises(assets.AssetUploadError):
                assets.upload_image(png_upload())
        mock_post.assert_not_called()

    @patch('shopadmin.catalog.assets.requests.post')
    def test_decompression_bomb(self, mock_post):
        """Test images over Pillow's pixel limit are rejected, not raised"""
        with patch.object(PILImage, 'MAX_IMAGE_PIXELS', 4):
            with self.assertRaises(assets.AssetUploadError):
                assets.upload_image(png_upload(size=(4, 4)))
        mock_post.assert_not_called()

    def test_not_configured(self):
        with patch.object(assets, 'ASSET_UPLOAD_URL', ''):
            with self.assertRaises(assets.AssetUploadError):
                assets.upload_image(png_upload())


class SeedStoreCommandTests(TestCase):
    def test_seed_store(self):
        user = TestDataFactory.create_user(username='demo')
        call_command('seed_store', 'demo', '--name', 'Demo', stdout=io.StringIO())

        store = Store.objects.get(owner=user, name='Demo')
        self.assertEqual(store.billboards.count(), 2)
        self.assertEqual(store.products.count(), 3)
        self.assertTrue(all(p.images.exists() for p in store.products.all()))

    def test_unknown_owner(self):
        with self.assertRaises(CommandError):
            call_command('seed_store', 'nobody', stdout=io.StringIO())
