"""
Test suite for the core module
Tests: authentication, roles, users, audit logs, preferences, event feed, errors
"""
from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.core.events import publish_event, PRODUCT_ADDED, DEBT_PAID
from backoffice.core.exceptions import BackofficeError, ConflictError, backoffice_exception_handler
from backoffice.core.models import AuditLog, EventLog, User, UserPreference
from backoffice.core.permissions import can_edit_records, is_backoffice_staff, user_role
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import create_audit_log, generate_public_id, to_decimal


class AuthTests(TestCase):
    """Test registration, login and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_customer(self):
        """Self-registered accounts never get a back-office role"""
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newcustomer',
            'email': 'new@test.com',
            'password': 'StrongPass123!',
            'password_confirm': 'StrongPass123!',
            'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'customer')
        self.assertIn('access', response.data)

    def test_login_returns_tokens_and_user(self):
        TestDataFactory.create_user(username='manager1', password='testpass123', role='manager')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'manager1', 'password': 'testpass123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'manager')

    def test_me_reports_access_flags(self):
        user = TestDataFactory.create_user(role='accountant')
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_backoffice_staff'])
        self.assertTrue(response.data['can_edit_records'])
        self.assertFalse(response.data['is_admin'])

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class RoleTests(TestCase):
    """Test role helpers"""

    def test_superuser_is_admin(self):
        user = TestDataFactory.create_user(role='customer', is_superuser=True)
        self.assertEqual(user_role(user), 'admin')

    def test_manager_is_staff_but_cannot_edit(self):
        user = TestDataFactory.create_user(role='manager')
        self.assertTrue(is_backoffice_staff(user))
        self.assertFalse(can_edit_records(user))

    def test_customer_has_no_backoffice_access(self):
        customer = TestDataFactory.create_user(role='customer')
        client = AuthenticatedAPIClient().authenticate_user(customer)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UserManagementTests(TestCase):
    """Test user list and detail endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.manager = TestDataFactory.create_user(role='manager')
        self.client = AuthenticatedAPIClient()

    def test_manager_cannot_change_roles(self):
        self.client.authenticate_user(self.manager)
        customer = TestDataFactory.create_user(role='customer')
        response = self.client.patch(f'/api/v1/users/{customer.id}/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_changes_role_with_audit(self):
        self.client.authenticate_user(self.admin)
        customer = TestDataFactory.create_user(role='customer')
        response = self.client.patch(f'/api/v1/users/{customer.id}/', {'role': 'manager'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.role, 'manager')
        self.assertTrue(AuditLog.objects.filter(model_name='User', object_id=str(customer.id)).exists())

    def test_cannot_delete_self(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manager_cannot_delete_admin(self):
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())

    def test_manager_cannot_deactivate_admin(self):
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/users/{self.admin.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

    def test_manager_edits_customer(self):
        self.client.authenticate_user(self.manager)
        customer = TestDataFactory.create_user(role='customer')
        response = self.client.patch(f'/api/v1/users/{customer.id}/', {'first_name': 'Oleg'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.first_name, 'Oleg')

    def test_admin_deletes_manager(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.manager.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=self.manager.pk).exists())


class AuditLogTests(TestCase):
    """Test audit log helper and listing"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))

    def test_audit_log_list_filters_by_action(self):
        create_audit_log(user=self.user, action='create', model_name='Supplier', object_id=1)
        create_audit_log(user=self.user, action='delete', model_name='Supplier', object_id=1)
        response = self.client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'delete')


class PreferenceTests(TestCase):
    """Test per-user preferences"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='customer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_put_creates_then_updates(self):
        response = self.client.put('/api/v1/preferences/page_size/', {'value': 50}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.put('/api/v1/preferences/page_size/', {'value': 100}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(UserPreference.objects.get(user=self.user, key='page_size').value, 100)

    def test_list_returns_map(self):
        UserPreference.objects.create(user=self.user, key='tab', value='debts')
        response = self.client.get('/api/v1/preferences/')
        self.assertEqual(response.data, {'tab': 'debts'})

    def test_delete_missing_preference(self):
        response = self.client.delete('/api/v1/preferences/unknown/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class EventFeedTests(TestCase):
    """Test event publishing and polling"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_unknown_event_type_rejected(self):
        with self.assertRaises(ValueError):
            publish_event('something_else', {})

    def test_events_after_cursor(self):
        first = publish_event(PRODUCT_ADDED, {'serial_number': 'SN-1'})
        publish_event(DEBT_PAID, {'debt_id': 'debt_1'})
        response = self.client.get(f'/api/v1/events/?after={first.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['event_type'], DEBT_PAID)
        self.assertFalse(response.data['has_more'])

    def test_events_filtered_by_type(self):
        publish_event(PRODUCT_ADDED, {})
        publish_event(DEBT_PAID, {})
        response = self.client.get(f'/api/v1/events/?types={PRODUCT_ADDED}')
        self.assertEqual([e['event_type'] for e in response.data['results']], [PRODUCT_ADDED])

    @override_settings(BACKOFFICE_EVENT_FEED_LIMIT=2)
    def test_event_feed_limit(self):
        for _ in range(3):
            publish_event(PRODUCT_ADDED, {})
        response = self.client.get('/api/v1/events/')
        self.assertEqual(len(response.data['results']), 2)
        self.assertTrue(response.data['has_more'])
        self.assertEqual(response.data['last_id'], EventLog.objects.order_by('id')[1].id)


class UtilsTests(TestCase):
    """Test helpers and the exception handler"""

    def test_generate_public_id(self):
        value = generate_public_id('payment')
        self.assertTrue(value.startswith('payment_'))
        self.assertEqual(len(value.split('_')), 3)

    def test_to_decimal(self):
        self.assertEqual(str(to_decimal('12.50')), '12.50')
        self.assertIsNone(to_decimal('abc'))
        self.assertIsNone(to_decimal('NaN'))

    def test_exception_handler_renders_details(self):
        response = backoffice_exception_handler(BackofficeError('Bad', details=['one']), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {'error': 'Bad', 'details': ['one']})

    def test_conflict_error_status(self):
        response = backoffice_exception_handler(ConflictError('Taken'), {})
        self.assertEqual(response.status_code, 409)
