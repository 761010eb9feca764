"""
Tests for the store endpoints: ownership and protected deletes
"""
from django.test import TestCase
from rest_framework import status

from shopadmin.core.models import AuditLog
from shopadmin.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopadmin.stores.models import Store


class StoreAPITests(TestCase):
    """Test store CRUD for the owning user"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_store(self):
        """Test the caller becomes the owner of a new store"""
        response = self.client.post('/api/stores/', {'name': 'Corner Shop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        store = Store.objects.get(pk=response.data['id'])
        self.assertEqual(store.owner, self.user)
        self.assertEqual(response.data['owner'], self.user.id)

    def test_owner_in_payload_is_ignored(self):
        """Test a store cannot be created on behalf of another user"""
        other = TestDataFactory.create_user()
        response = self.client.post('/api/stores/', {'name': 'Corner Shop', 'owner': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Store.objects.get(pk=response.data['id']).owner, self.user)

    def test_create_store_requires_name(self):
        response = self.client.post('/api/stores/', {'name': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_list_only_owned_stores(self):
        """Test a user only sees their own stores, oldest first"""
        first = TestDataFactory.create_store(owner=self.user, name='First')
        second = TestDataFactory.create_store(owner=self.user, name='Second')
        TestDataFactory.create_store(name='Not mine')

        response = self.client.get('/api/stores/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['id'] for s in response.data], [first.id, second.id])

    def test_rename_store(self):
        store = TestDataFactory.create_store(owner=self.user, name='Old name')
        response = self.client.patch(f'/api/stores/{store.id}/', {'name': 'New name'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        store.refresh_from_db()
        self.assertEqual(store.name, 'New name')

    def test_other_users_store_forbidden(self):
        """Test another user's store can be neither read nor changed"""
        store = TestDataFactory.create_store(name='Not mine')
        self.assertEqual(self.client.get(f'/api/stores/{store.id}/').status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch(f'/api/stores/{store.id}/', {'name': 'Mine now'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        store.refresh_from_db()
        self.assertEqual(store.name, 'Not mine')

    def test_unknown_store(self):
        response = self.client.get('/api/stores/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_empty_store(self):
        store = TestDataFactory.create_store(owner=self.user)
        response = self.client.delete(f'/api/stores/{store.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Store.objects.filter(pk=store.id).exists())

    def test_delete_store_with_records_rejected(self):
        """Test a store that still has catalog records cannot be deleted"""
        store = TestDataFactory.create_store(owner=self.user)
        TestDataFactory.create_product(store)

        response = self.client.delete(f'/api/stores/{store.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Make sure you removed all products and categories first.')
        self.assertTrue(Store.objects.filter(pk=store.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete_rejected', model_name='Store').exists())

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/stores/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
