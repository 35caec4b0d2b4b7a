"""
Test suite for the arrivals module
Tests: arrival creation with debts, sold-goods conflicts, deletion refunds, stock availability
"""
from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backoffice.arrivals.models import Arrival
from backoffice.arrivals.services import available_products
from backoffice.core.events import PRODUCT_ADDED, PRODUCT_REMOVED, ARRIVAL_DELETED
from backoffice.core.models import EventLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.debts.models import Debt
from backoffice.payments.models import Payment
from backoffice.payments.services import CATEGORY_ARRIVAL_REFUND


def phone_item(serials=('SN-001', 'SN-002'), name='Phone X', price='150.00', cost_price='100.00'):
    return {
        'product_name': name,
        'serial_numbers': list(serials),
        'price': price,
        'cost_price': cost_price,
    }


def accessory_item(quantity=10, name='Case', price='20.00', cost_price='5.00'):
    return {
        'product_name': name,
        'quantity': quantity,
        'price': price,
        'cost_price': cost_price,
        'is_accessory': True,
    }


class ArrivalModelTests(TestCase):
    """Test arrival totals and payable amount"""

    def test_totals_and_payable_amount(self):
        arrival = TestDataFactory.create_arrival(items=[
            {'product_name': 'Phone', 'serial_numbers': ['A1'], 'quantity': 1,
             'price': Decimal('150.00'), 'cost_price': Decimal('100.00')},
            {'product_name': 'Setup', 'quantity': 2, 'price': Decimal('30.00'),
             'cost_price': Decimal('0.00'), 'is_service': True},
        ])
        self.assertEqual(arrival.total_quantity, 3)
        self.assertEqual(arrival.total_value, Decimal('100.00'))
        # Services without a cost price are not owed to the supplier
        self.assertEqual(arrival.payable_amount(), Decimal('100.00'))


class ArrivalCreateTests(TestCase):
    """Test POST /arrivals/"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier(name='Mobile Trade')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def post_arrival(self, items, supplier=True, arrival_date='2024-03-10'):
        payload = {'date': arrival_date, 'items': items, 'notes': 'weekly delivery'}
        if supplier:
            payload['supplier'] = self.supplier.id
        return self.client.post('/api/v1/arrivals/', payload, format='json')

    def test_create_arrival_with_debt(self):
        response = self.post_arrival([phone_item(), accessory_item(quantity=4)])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_quantity'], 6)
        self.assertEqual(response.data['supplier_name'], 'Mobile Trade')

        debt = Debt.objects.get(arrival_id=response.data['id'])
        self.assertEqual(response.data['debt_id'], debt.debt_id)
        self.assertEqual(debt.amount, Decimal('220.00'))
        self.assertEqual(debt.remaining_amount, Decimal('220.00'))
        self.assertEqual(debt.due_date, date(2024, 3, 14))
        self.assertEqual(debt.notes, 'Debt for arrival of 10.03.2024 (Phone X, Case)')
        self.assertEqual(debt.items.count(), 2)

    def test_product_added_events(self):
        self.post_arrival([phone_item(), accessory_item(quantity=4)])
        events = EventLog.objects.filter(event_type=PRODUCT_ADDED).order_by('id')
        self.assertEqual(events.count(), 3)
        self.assertEqual(events[0].payload['serial_number'], 'SN-001')
        self.assertEqual(events[2].payload['quantity'], 4)

    def test_no_debt_without_supplier(self):
        response = self.post_arrival([phone_item()], supplier=False)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(Debt.objects.exists())
        self.assertIsNone(response.data['debt_id'])

    def test_serial_quantity_follows_serial_count(self):
        item = phone_item(serials=[' A1 ', 'A2', 'A3'])
        item['quantity'] = 1
        response = self.post_arrival([item])
        self.assertEqual(response.data['items'][0]['quantity'], 3)
        self.assertEqual(response.data['items'][0]['serial_numbers'], ['A1', 'A2', 'A3'])

    def test_rejects_price_below_cost(self):
        response = self.post_arrival([phone_item(price='90.00')])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_serial_repeated_within_arrival(self):
        response = self.post_arrival([phone_item(serials=['X1']), phone_item(serials=['X1'], name='Phone Y')])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_serial_from_another_arrival(self):
        self.post_arrival([phone_item(serials=['X1'])])
        response = self.post_arrival([phone_item(serials=['X1'])])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Arrival.objects.count(), 1)

    def test_rejects_empty_items(self):
        response = self.post_arrival([])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated_and_filtered(self):
        self.post_arrival([phone_item(serials=['A1'])], arrival_date='2024-03-01')
        self.post_arrival([phone_item(serials=['B1'], name='Tablet')], arrival_date='2024-03-05')
        response = self.client.get('/api/v1/arrivals/?date_from=2024-03-02')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/arrivals/?search=tablet')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['items'][0]['product_name'], 'Tablet')


class ArrivalUpdateTests(TestCase):
    """Test PUT /arrivals/<id>/"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/arrivals/', {
            'date': '2024-03-10', 'supplier': self.supplier.id, 'items': [phone_item()]
        }, format='json')
        self.arrival = Arrival.objects.get(pk=response.data['id'])

    def put_items(self, items):
        return self.client.put(f'/api/v1/arrivals/{self.arrival.id}/', {
            'date': '2024-03-10', 'supplier': self.supplier.id, 'items': items
        }, format='json')

    def test_update_reprices_debt_and_keeps_payment(self):
        debt = Debt.objects.get(arrival=self.arrival)
        debt.paid_amount = Decimal('50.00')
        debt.save()

        response = self.put_items([phone_item(serials=['SN-001', 'SN-002', 'SN-003'])])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        debt.refresh_from_db()
        self.assertEqual(debt.amount, Decimal('300.00'))
        self.assertEqual(debt.paid_amount, Decimal('50.00'))
        self.assertEqual(debt.remaining_amount, Decimal('250.00'))
        self.assertEqual(debt.status, 'partially_paid')

    def test_update_publishes_removed_and_added(self):
        EventLog.objects.all().delete()
        self.put_items([phone_item(serials=['SN-009'])])
        self.assertEqual(EventLog.objects.filter(event_type=PRODUCT_REMOVED).count(), 2)
        self.assertEqual(EventLog.objects.filter(event_type=PRODUCT_ADDED).count(), 1)

    def test_update_conflicts_with_sold_serial(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-001', receipt_number='R-000001')
        response = self.put_items([phone_item(serials=['SN-002'])])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details'], ['"Phone X" (S/N: SN-001) -> receipt R-000001'])

    def test_cancelled_receipt_does_not_block_update(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-001', status='cancelled')
        response = self.put_items([phone_item(serials=['SN-002'])])
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ArrivalDeleteTests(TestCase):
    """Test DELETE /arrivals/<id>/ and clear-all"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/arrivals/', {
            'date': '2024-03-10', 'supplier': self.supplier.id, 'items': [phone_item()]
        }, format='json')
        self.arrival = Arrival.objects.get(pk=response.data['id'])

    def test_delete_blocked_by_live_receipt(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-002', receipt_number='R-000007')
        response = self.client.delete(f'/api/v1/arrivals/{self.arrival.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('R-000007', response.data['details'][0])
        self.assertTrue(Arrival.objects.filter(pk=self.arrival.pk).exists())

    def test_delete_unpaid_arrival(self):
        response = self.client.delete(f'/api/v1/arrivals/{self.arrival.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('refund', response.data)
        self.assertFalse(Debt.objects.exists())
        self.assertEqual(EventLog.objects.filter(event_type=PRODUCT_REMOVED).count(), 2)
        self.assertTrue(EventLog.objects.filter(event_type=ARRIVAL_DELETED).exists())

    def test_delete_paid_arrival_refunds_register(self):
        debt = Debt.objects.get(arrival=self.arrival)
        self.client.patch(f'/api/v1/debts/{debt.debt_id}/pay/', {'amount': '120.00'}, format='json')

        response = self.client.delete(f'/api/v1/arrivals/{self.arrival.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['refund']['amount'], Decimal('120.00'))

        refund = Payment.objects.get(category=CATEGORY_ARRIVAL_REFUND)
        self.assertEqual(refund.amount, Decimal('120.00'))
        self.assertEqual(refund.api_type, 'income')
        self.assertEqual(refund.in_cash_register, 'yes')

    def test_clear_all_requires_editor_role(self):
        manager = TestDataFactory.create_user(role='manager')
        client = AuthenticatedAPIClient().authenticate_user(manager)
        response = client.delete('/api/v1/arrivals/clear-all/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_clear_all(self):
        response = self.client.delete('/api/v1/arrivals/clear-all/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted_count'], 1)
        self.assertEqual(response.data['deleted_debts'], 1)
        self.assertFalse(Arrival.objects.exists())


class AvailableProductsTests(TestCase):
    """Test stock availability across arrivals"""

    def setUp(self):
        self.arrival = TestDataFactory.create_arrival(items=[
            {'product_name': 'Phone X', 'serial_numbers': ['SN-001', 'SN-002'], 'quantity': 2,
             'price': Decimal('150.00'), 'cost_price': Decimal('100.00'), 'barcode': '460000111'},
            {'product_name': 'Case', 'quantity': 5, 'price': Decimal('20.00'),
             'cost_price': Decimal('5.00'), 'is_accessory': True},
        ])

    def test_sold_serial_excluded(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-001')
        serials = [p['serial_number'] for p in available_products() if p['product_name'] == 'Phone X']
        self.assertEqual(serials, ['SN-002'])

    def test_cancelled_sale_releases_serial(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-001', status='cancelled')
        serials = [p['serial_number'] for p in available_products() if p['product_name'] == 'Phone X']
        self.assertEqual(serials, ['SN-001', 'SN-002'])

    def test_accessory_remaining_quantity(self):
        TestDataFactory.create_receipt(self.arrival, product_name='Case', quantity=3, is_accessory=True,
                                       price=Decimal('20.00'), cost_price=Decimal('5.00'))
        case = [p for p in available_products() if p['product_name'] == 'Case'][0]
        self.assertEqual(case['quantity'], 2)

    def test_sold_out_accessory_omitted(self):
        TestDataFactory.create_receipt(self.arrival, product_name='Case', quantity=5, is_accessory=True,
                                       price=Decimal('20.00'), cost_price=Decimal('5.00'))
        self.assertFalse([p for p in available_products() if p['product_name'] == 'Case'])

    def test_search_by_exact_serial_and_barcode(self):
        self.assertEqual([p['serial_number'] for p in available_products('sn-002')], ['SN-002'])
        self.assertEqual(len(available_products('460000')), 2)
        self.assertEqual(available_products('SN-00'), [])

    def test_endpoint(self):
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/v1/arrivals/available-products/?search=case')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['quantity'], 5)
        self.assertIsNone(response.data[0]['serial_number'])
