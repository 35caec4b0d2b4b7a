"""
Test suite for the orders module
Tests: order placement, access, fulfilment status, bulk operations, call requests, stats, addresses, profile
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.orders.models import Order, Address


class OrderAPITests(TestCase):
    """Test order endpoints for customers and staff"""

    def setUp(self):
        self.customer = TestDataFactory.create_user(role='customer')
        self.other_customer = TestDataFactory.create_user(role='customer')
        self.manager = TestDataFactory.create_user(role='manager')
        self.customer_client = AuthenticatedAPIClient().authenticate_user(self.customer)
        self.staff_client = AuthenticatedAPIClient().authenticate_user(self.manager)
        self.order = TestDataFactory.create_order(user=self.customer, total=Decimal('1200.00'),
                                                  shipping=Decimal('200.00'), items=2)

    def test_staff_list(self):
        TestDataFactory.create_order(user=self.other_customer, status='cancelled')
        response = self.staff_client.get('/api/v1/orders/?status=pending')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer_name'], 'Ivan Petrov')
        self.assertEqual(len(response.data['results'][0]['items']), 2)

    def test_customers_cannot_list_all_orders(self):
        response = self.customer_client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_places_order(self):
        response = self.customer_client.post('/api/v1/orders/', {
            'items': [
                {'product_id': 'p-1', 'name': 'Phone X', 'price': '100.00', 'quantity': 2},
                {'name': 'Case', 'price': '20.50'},
            ],
            'shipping': '300.00',
            'total': '1.00',
            'status': 'delivered',
            'payment_method': 'cash',
            'shipping_address': {'first_name': 'Anna', 'last_name': 'Smirnova', 'phone': '79990001122'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items']), 2)
        self.assertEqual(response.data['customer_name'], 'Anna Smirnova')

        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.user, self.customer)
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.subtotal, Decimal('220.50'))
        self.assertEqual(order.total, Decimal('520.50'))
        self.assertEqual(order.items.get(name='Case').quantity, 1)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Order',
                                                object_id=str(order.id)).exists())

    def test_order_without_shipping(self):
        response = self.customer_client.post('/api/v1/orders/', {
            'items': [{'name': 'Case', 'price': '20.00', 'quantity': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.total, Decimal('60.00'))
        self.assertEqual(order.shipping, Decimal('0.00'))

    def test_order_validation(self):
        for payload in (
            {'items': []},
            {'items': [{'name': 'Case', 'price': '20.00', 'quantity': 0}]},
            {'items': [{'name': 'Case', 'price': '-1.00'}]},
            {'items': [{'price': '20.00'}]},
        ):
            response = self.customer_client.post('/api/v1/orders/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, payload)
        self.assertEqual(Order.objects.count(), 1)

    def test_my_orders(self):
        TestDataFactory.create_order(user=self.other_customer)
        response = self.customer_client.get('/api/v1/orders/my-orders/')
        self.assertEqual([o['order_number'] for o in response.data], [self.order.order_number])

    def test_detail_owner_or_staff(self):
        url = f'/api/v1/orders/{self.order.pk}/'
        self.assertEqual(self.customer_client.get(url).status_code, status.HTTP_200_OK)
        self.assertEqual(self.staff_client.get(url).status_code, status.HTTP_200_OK)
        other = AuthenticatedAPIClient().authenticate_user(self.other_customer)
        response = other.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)

    def test_update_status(self):
        response = self.staff_client.put(f'/api/v1/orders/{self.order.pk}/status/', {
            'status': 'shipped', 'tracking_number': 'TRK-1'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'shipped')
        self.assertEqual(self.order.tracking_number, 'TRK-1')
        log = AuditLog.objects.get(action='order_status')
        self.assertEqual(log.changes['previous_status'], 'pending')

    def test_update_status_invalid(self):
        response = self.staff_client.put(f'/api/v1/orders/{self.order.pk}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customer_cannot_change_status(self):
        response = self.customer_client.put(f'/api/v1/orders/{self.order.pk}/status/', {'status': 'delivered'},
                                            format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_call_request_and_status(self):
        response = self.customer_client.post(f'/api/v1/orders/{self.order.pk}/call-request/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['call_request'])
        self.assertEqual(response.data['call_status'], 'requested')

        response = self.staff_client.patch(f'/api/v1/orders/{self.order.pk}/call-status/', {'called': True},
                                           format='json')
        self.assertFalse(response.data['call_request'])
        self.assertEqual(response.data['call_status'], 'completed')

        response = self.staff_client.patch(f'/api/v1/orders/{self.order.pk}/call-status/', {'called': False},
                                           format='json')
        self.assertEqual(response.data['call_status'], 'not_completed')

    def test_stats(self):
        TestDataFactory.create_order(user=self.other_customer, total=Decimal('500.00'), status='cancelled')
        response = self.staff_client.get('/api/v1/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['by_status']['pending'], 1)
        self.assertEqual(response.data['by_status']['cancelled'], 1)
        self.assertEqual(response.data['by_status']['delivered'], 0)
        self.assertEqual(response.data['today_revenue'], Decimal('1200.00'))
        self.assertEqual(response.data['today_profit'], Decimal('1000.00'))


class AddressAPITests(TestCase):
    """Test saved delivery addresses"""

    def setUp(self):
        self.customer = TestDataFactory.create_user(role='customer')
        self.client = AuthenticatedAPIClient().authenticate_user(self.customer)
        self.url = f'/api/v1/users/{self.customer.id}/addresses/'

    def add(self, address, **extra):
        return self.client.post(self.url, {'address': address, **extra}, format='json')

    def test_first_address_becomes_default(self):
        response = self.add('Lenina 1')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_default'])
        self.assertEqual(response.data['name'], 'Address 1')

        response = self.add('Mira 2', name='Work')
        self.assertFalse(response.data['is_default'])
        self.assertEqual(response.data['name'], 'Work')

    def test_new_default_replaces_old(self):
        self.add('Lenina 1')
        self.add('Mira 2', is_default=True)
        defaults = Address.objects.filter(user=self.customer, is_default=True)
        self.assertEqual([a.address for a in defaults], ['Mira 2'])

    def test_duplicate_address_conflict(self):
        self.add('Lenina 1')
        response = self.add('  lenina 1 ')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_update_address(self):
        address_id = self.add('Lenina 1').data['address_id']
        response = self.client.patch(f'{self.url}{address_id}/', {'comment': 'ring twice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['comment'], 'ring twice')

    def test_update_to_duplicate_conflict(self):
        self.add('Lenina 1')
        address_id = self.add('Mira 2').data['address_id']
        response = self.client.patch(f'{self.url}{address_id}/', {'address': 'LENINA 1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_deleting_default_promotes_oldest(self):
        first_id = self.add('Lenina 1').data['address_id']
        self.add('Mira 2')
        self.add('Gagarina 3')
        response = self.client.delete(f'{self.url}{first_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Address.objects.get(user=self.customer, is_default=True).address, 'Mira 2')

    def test_other_users_addresses_forbidden(self):
        other = TestDataFactory.create_user(role='customer')
        response = self.client.get(f'/api/v1/users/{other.id}/addresses/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_can_read_addresses(self):
        self.add('Lenina 1')
        staff = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='manager'))
        response = staff.get(self.url)
        self.assertEqual(len(response.data), 1)


class UserProfileTests(TestCase):
    """Test the profile summary"""

    def setUp(self):
        self.customer = TestDataFactory.create_user(role='customer')
        self.client = AuthenticatedAPIClient().authenticate_user(self.customer)

    def test_profile_stats(self):
        TestDataFactory.create_order(user=self.customer, total=Decimal('1000.00'), status='delivered')
        TestDataFactory.create_order(user=self.customer, total=Decimal('501.00'), status='processing')
        Address.objects.create(user=self.customer, address='Lenina 1', is_default=True)

        response = self.client.get(f'/api/v1/users/{self.customer.id}/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], self.customer.id)
        self.assertEqual(len(response.data['addresses']), 1)
        self.assertEqual(len(response.data['orders']), 2)
        stats = response.data['stats']
        self.assertEqual(stats['orders_count'], 2)
        self.assertEqual(stats['total_spent'], Decimal('1501.00'))
        self.assertEqual(stats['average_order_value'], 750)
        self.assertEqual(stats['active_orders'], 1)

    def test_empty_profile(self):
        response = self.client.get(f'/api/v1/users/{self.customer.id}/profile/')
        self.assertEqual(response.data['stats']['orders_count'], 0)
        self.assertEqual(response.data['stats']['average_order_value'], 0)
        self.assertFalse(Order.objects.exists())


class OrderBulkTests(TestCase):
    """Test admin-only bulk status changes and deletion"""

    def setUp(self):
        self.customer = TestDataFactory.create_user(role='customer')
        self.admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='admin'))
        self.manager_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='manager'))
        self.orders = [TestDataFactory.create_order(user=self.customer, items=1) for _ in range(3)]
        self.orders[2].status = 'confirmed'
        self.orders[2].save()

    def test_bulk_update_status(self):
        ids = [order.id for order in self.orders]
        response = self.admin_client.post('/api/v1/orders/bulk-update-status/', {
            'order_ids': ids, 'status': 'confirmed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['modified_count'], 2)
        self.assertEqual(Order.objects.filter(status='confirmed').count(), 3)
        log = AuditLog.objects.get(action='order_status', object_id='*')
        self.assertEqual(log.changes['order_ids'], ids)

    def test_bulk_update_invalid_status(self):
        response = self.admin_client.post('/api/v1/orders/bulk-update-status/', {
            'order_ids': [self.orders[0].id], 'status': 'lost'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_delete(self):
        keep = self.orders[2]
        response = self.admin_client.post('/api/v1/orders/bulk-delete/', {
            'order_ids': [self.orders[0].id, self.orders[1].id, 999999]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted_count'], 2)
        self.assertEqual(list(Order.objects.values_list('id', flat=True)), [keep.id])
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Order', object_id='*').exists())

    def test_bulk_delete_requires_ids(self):
        response = self.admin_client.post('/api/v1/orders/bulk-delete/', {'order_ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_operations_are_admin_only(self):
        ids = [order.id for order in self.orders]
        response = self.manager_client.post('/api/v1/orders/bulk-update-status/', {
            'order_ids': ids, 'status': 'cancelled'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.manager_client.post('/api/v1/orders/bulk-delete/', {'order_ids': ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        customer_client = AuthenticatedAPIClient().authenticate_user(self.customer)
        response = customer_client.post('/api/v1/orders/bulk-delete/', {'order_ids': ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Order.objects.count(), 3)
