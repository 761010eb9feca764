"""
Tests for auth endpoints, audit logging and the shared record services
"""
from django.test import TestCase
from rest_framework import serializers, status

from shopadmin.core.models import AuditLog
from shopadmin.core.records import get_resource, validation_errors
from shopadmin.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopadmin.core.utils import create_audit_log


class AuthAPITests(TestCase):
    """Test registration, JWT login and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_returns_tokens(self):
        """Test registration creates the user and returns a token pair"""
        data = {
            'username': 'shopowner',
            'email': 'owner@test.com',
            'password': 'Tr1cky-Passw0rd!',
            'password_confirm': 'Tr1cky-Passw0rd!',
        }
        response = self.client.post('/api/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'shopowner')

    def test_register_password_mismatch(self):
        """Test registration with mismatched passwords fails"""
        data = {
            'username': 'shopowner',
            'password': 'Tr1cky-Passw0rd!',
            'password_confirm': 'something-else',
        }
        response = self.client.post('/api/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_login_returns_tokens(self):
        """Test JWT login with valid credentials"""
        TestDataFactory.create_user(username='loginuser', password='testpass123')
        response = self.client.post(
            '/api/auth/login/', {'username': 'loginuser', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        """Test JWT login with a wrong password is rejected"""
        TestDataFactory.create_user(username='loginuser', password='testpass123')
        response = self.client.post(
            '/api/auth/login/', {'username': 'loginuser', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_returns_access_token(self):
        """Test a refresh token from login can be exchanged for a new access token"""
        TestDataFactory.create_user(username='loginuser', password='testpass123')
        login = self.client.post(
            '/api/auth/login/', {'username': 'loginuser', 'password': 'testpass123'}, format='json'
        )
        response = self.client.post('/api/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_lists_owned_stores(self):
        """Test the current-user endpoint includes the stores the user owns"""
        user = TestDataFactory.create_user()
        store = TestDataFactory.create_store(owner=user, name='Main Street')
        TestDataFactory.create_store(name='Someone else')
        self.client.authenticate_user(user)

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stores'], [{'id': store.id, 'name': 'Main Street'}])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogTests(TestCase):
    """Test audit log creation and listing"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = TestDataFactory.create_store(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_writes_audit_log(self):
        """Test creating a billboard records who created it and in which store"""
        response = self.client.post(
            f'/api/{self.store.id}/billboards/',
            {'label': 'Summer Sale', 'image_url': 'https://cdn.example.com/img.png'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        log = AuditLog.objects.get(action='create', model_name='Billboard')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_id, str(response.data['id']))
        self.assertEqual(log.object_name, 'Summer Sale')
        self.assertEqual(log.store_id, str(self.store.id))
        self.assertEqual(log.changes['label'], 'Summer Sale')

    def test_missing_fields_skip_audit_log(self):
        """Test audit logging without an object id is skipped, not raised"""
        self.assertIsNone(create_audit_log(user=self.user, action='create', model_name='Billboard'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_list_only_shows_own_logs(self):
        """Test non-staff users only see their own audit entries"""
        other = TestDataFactory.create_user()
        create_audit_log(user=self.user, action='create', model_name='Size', object_id=1, store_id=self.store.id)
        create_audit_log(user=other, action='create', model_name='Size', object_id=2)

        response = self.client.get('/api/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], '1')

    def test_list_filters_by_store(self):
        """Test staff users can filter audit logs by store"""
        staff = TestDataFactory.create_user(is_staff=True)
        create_audit_log(user=self.user, action='create', model_name='Size', object_id=1, store_id=self.store.id)
        create_audit_log(user=self.user, action='create', model_name='Size', object_id=2, store_id=999)
        self.client.authenticate_user(staff)

        response = self.client.get('/api/audit-logs/', {'store': self.store.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([log['object_id'] for log in response.data], ['1'])

    def test_detail_of_other_user_forbidden(self):
        other = TestDataFactory.create_user()
        log = create_audit_log(user=other, action='create', model_name='Size', object_id=2)
        response = self.client.get(f'/api/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class RecordServiceTests(TestCase):
    """Test the collection registry and error flattening"""

    def test_collections_are_registered(self):
        for name in ('stores', 'billboards', 'categories', 'sizes', 'colors', 'products'):
            self.assertEqual(get_resource(name).name, name)

    def test_unknown_collection(self):
        with self.assertRaises(LookupError):
            get_resource('orders')

    def test_validation_errors_flattened(self):
        exc = serializers.ValidationError({
            'label': ['Ensure this field has at least 3 characters.'],
            'images': {0: {'url': ['Enter a valid URL.']}},
        })
        errors = validation_errors(exc)
        self.assertEqual(errors['label'], ['Ensure this field has at least 3 characters.'])
        self.assertEqual(errors['images'], ['Enter a valid URL.'])

    def test_validation_errors_without_fields(self):
        errors = validation_errors(serializers.ValidationError('Bad request'))
        self.assertEqual(errors, {'non_field_errors': ['Bad request']})
