"""
Test suite for the receipts module
Tests: stock validation, numbering, totals, ledger postings, cancel, debt receipts, incassation, stats
"""
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework import status

from backoffice.arrivals.services import available_products
from backoffice.core.events import RECEIPT_CREATED, RECEIPT_CANCELLED
from backoffice.core.exceptions import ConflictError
from backoffice.core.models import EventLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.payments.models import Payment
from backoffice.payments.services import CATEGORY_SALE, cash_in_register
from backoffice.receipts.models import Receipt, ReceiptPayment
from backoffice.receipts.services import create_numbered_receipt, next_receipt_number


class ReceiptTestMixin:

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Mobile Trade')
        self.arrival = TestDataFactory.create_arrival(supplier=self.supplier, items=[
            {'product_name': 'Phone X', 'serial_numbers': ['SN-001', 'SN-002'], 'quantity': 2,
             'price': Decimal('150.00'), 'cost_price': Decimal('100.00')},
            {'product_name': 'Case', 'quantity': 5, 'price': Decimal('20.00'),
             'cost_price': Decimal('5.00'), 'is_accessory': True},
        ])

    def phone_line(self, serial='SN-001', **overrides):
        line = {
            'arrival_id': self.arrival.id,
            'product_name': 'Phone X',
            'serial_number': serial,
            'price': '150.00',
            'cost_price': '100.00',
        }
        line.update(overrides)
        return line

    def case_line(self, quantity=1, **overrides):
        line = {
            'arrival_id': self.arrival.id,
            'product_name': 'Case',
            'quantity': quantity,
            'price': '20.00',
            'cost_price': '5.00',
            'is_accessory': True,
        }
        line.update(overrides)
        return line

    def post_receipt(self, items, **extra):
        payload = {'customer_name': 'Anna', 'items': items}
        payload.update(extra)
        return self.client.post('/api/v1/receipts/', payload, format='json')


class ReceiptNumberTests(TestCase):
    """Test sequential receipt numbering"""

    def test_first_number(self):
        self.assertEqual(next_receipt_number(), 'R-000001')

    def test_follows_highest_number(self):
        Receipt.objects.create(receipt_number='R-000009')
        Receipt.objects.create(receipt_number='R-000002')
        Receipt.objects.create(receipt_number='MANUAL')
        self.assertEqual(next_receipt_number(), 'R-000010')


class ReceiptCreateTests(ReceiptTestMixin, TestCase):
    """Test POST /receipts/"""

    def test_create_cash_receipt(self):
        response = self.post_receipt([self.phone_line(), self.case_line(quantity=2)])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['receipt_number'], 'R-000001')

        receipt = Receipt.objects.get(pk=response.data['id'])
        self.assertEqual(receipt.subtotal, Decimal('190.00'))
        self.assertEqual(receipt.total, Decimal('190.00'))
        self.assertEqual(receipt.items.get(product_name='Case').total, Decimal('40.00'))
        self.assertEqual(receipt.items.first().supplier_id, self.supplier.id)

        part = receipt.payments.get()
        self.assertEqual(part.method, 'cash')
        self.assertTrue(part.in_cash_register)
        self.assertEqual(part.cash_register_date, receipt.date)

        entry = Payment.objects.get(receipt=receipt)
        self.assertEqual(entry.category, CATEGORY_SALE)
        self.assertEqual(entry.description, 'Receipt R-000001')
        self.assertEqual(entry.api_type, 'income')
        self.assertEqual(entry.type, 'cash')
        self.assertEqual(entry.in_cash_register, 'yes')
        self.assertEqual(cash_in_register(), Decimal('190.00'))
        self.assertTrue(EventLog.objects.filter(event_type=RECEIPT_CREATED).exists())

    def test_discount_and_delivery(self):
        response = self.post_receipt(
            [self.phone_line()], discount_type='percent', discount_value='10', delivery_cost='30.00'
        )
        receipt = Receipt.objects.get(pk=response.data['id'])
        self.assertEqual(receipt.discount, Decimal('15.00'))
        self.assertEqual(receipt.total, Decimal('165.00'))

    def test_mixed_payment_parts(self):
        response = self.post_receipt([self.phone_line()], payment_method='mixed', payments=[
            {'method': 'cash', 'amount': '50.00'},
            {'method': 'card', 'amount': '60.00'},
            {'method': 'keb', 'amount': '40.00'},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        entries = Payment.objects.filter(receipt_id=response.data['id'])
        self.assertEqual(
            sorted((e.type, e.in_cash_register) for e in entries),
            [('cash', 'yes'), ('keb', 'no'), ('transfer', 'no')]
        )
        self.assertFalse(ReceiptPayment.objects.get(method='card').in_cash_register)

    def test_mixed_without_parts_rejected(self):
        response = self.post_receipt([self.phone_line()], payment_method='mixed')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Receipt.objects.exists())

    def test_parts_must_add_up_to_total(self):
        response = self.post_receipt([self.phone_line()], payment_method='mixed', payments=[
            {'method': 'cash', 'amount': '10.00'},
            {'method': 'sber_transfer', 'amount': '5.00', 'sber_recipient': 'Oleg'},
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('150.00', response.data['details'][0])
        self.assertFalse(Receipt.objects.exists())
        self.assertFalse(Payment.objects.exists())

    def test_sber_transfer_needs_recipient(self):
        response = self.post_receipt([self.phone_line()], payment_method='mixed', payments=[
            {'method': 'cash', 'amount': '100.00'},
            {'method': 'sber_transfer', 'amount': '50.00', 'sber_recipient': '  '},
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Receipt.objects.exists())

        response = self.post_receipt([self.phone_line()], payment_method='mixed', payments=[
            {'method': 'cash', 'amount': '100.00'},
            {'method': 'sber_transfer', 'amount': '50.00', 'sber_recipient': 'Oleg'},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ReceiptPayment.objects.get(method='sber_transfer').sber_recipient, 'Oleg')

    def test_taken_number_is_retried(self):
        Receipt.objects.create(receipt_number='R-000001')
        with mock.patch('backoffice.receipts.services.next_receipt_number',
                        side_effect=['R-000001', 'R-000002']):
            receipt = create_numbered_receipt(customer_name='Anna')
        self.assertEqual(receipt.receipt_number, 'R-000002')
        self.assertEqual(Receipt.objects.count(), 2)

    def test_number_allocation_gives_up_with_conflict(self):
        Receipt.objects.create(receipt_number='R-000001')
        with mock.patch('backoffice.receipts.services.next_receipt_number', return_value='R-000001'):
            with self.assertRaises(ConflictError):
                create_numbered_receipt(customer_name='Anna')
        self.assertEqual(Receipt.objects.count(), 1)

    def test_debt_receipt_ledger(self):
        response = self.post_receipt([self.phone_line()], is_debt=True)
        entry = Payment.objects.get(receipt_id=response.data['id'])
        self.assertEqual(entry.in_cash_register, 'debt')
        self.assertEqual(entry.status, 'debt')
        self.assertEqual(cash_in_register(), Decimal('0.00'))

    def test_all_problems_reported_together(self):
        response = self.post_receipt([
            self.phone_line(serial='SN-404'),
            self.phone_line(serial='SN-002', price='149.00'),
            self.case_line(quantity=6),
            self.phone_line(arrival_id=999999),
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(response.data['details']), 4)
        self.assertFalse(Receipt.objects.exists())

    def test_price_within_tolerance_accepted(self):
        response = self.post_receipt([self.phone_line(price='150.01')])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_supplier_mismatch(self):
        other = TestDataFactory.create_supplier()
        response = self.post_receipt([self.phone_line(supplier_id=other.id)])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_serial_cannot_be_sold_twice(self):
        self.post_receipt([self.phone_line()])
        response = self.post_receipt([self.phone_line()])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already sold', response.data['details'][0])

    def test_serial_twice_in_one_receipt(self):
        response = self.post_receipt([self.phone_line(), self.phone_line()])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_accessory_stock_counts_previous_sales(self):
        self.post_receipt([self.case_line(quantity=4)])
        response = self.post_receipt([self.case_line(quantity=2)])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.post_receipt([self.case_line(quantity=1)])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_empty_items_rejected(self):
        response = self.post_receipt([])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ReceiptLifecycleTests(ReceiptTestMixin, TestCase):
    """Test cancel, pay-debt, delete and incassation"""

    def test_cancel_removes_ledger_and_releases_goods(self):
        response = self.post_receipt([self.phone_line()])
        receipt_id = response.data['id']
        self.assertNotIn('SN-001', [p['serial_number'] for p in available_products()])

        response = self.client.patch(f'/api/v1/receipts/{receipt_id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Payment.objects.filter(receipt_id=receipt_id).exists())
        self.assertIn('SN-001', [p['serial_number'] for p in available_products()])
        self.assertTrue(EventLog.objects.filter(event_type=RECEIPT_CANCELLED).exists())

    def test_cancelled_receipt_cannot_be_reopened(self):
        response = self.post_receipt([self.phone_line()])
        url = f"/api/v1/receipts/{response.data['id']}/"
        self.client.patch(url, {'status': 'cancelled'}, format='json')
        response = self.client.patch(url, {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_customer_details(self):
        response = self.post_receipt([self.phone_line()])
        response = self.client.patch(f"/api/v1/receipts/{response.data['id']}/", {
            'customer_phone': '79990001122', 'notes': 'gift wrap'
        }, format='json')
        self.assertEqual(response.data['customer_phone'], '79990001122')
        self.assertEqual(response.data['notes'], 'gift wrap')

    def test_pay_debt(self):
        response = self.post_receipt([self.phone_line()], is_debt=True)
        receipt_id = response.data['id']
        response = self.client.patch(f'/api/v1/receipts/{receipt_id}/pay-debt/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['debt_paid'])

        entry = Payment.objects.get(receipt_id=receipt_id)
        self.assertEqual(entry.status, 'active')
        self.assertEqual(entry.in_cash_register, 'yes')
        self.assertEqual(cash_in_register(), Decimal('150.00'))

        response = self.client.patch(f'/api/v1/receipts/{receipt_id}/pay-debt/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pay_debt_on_regular_receipt(self):
        response = self.post_receipt([self.phone_line()])
        response = self.client.patch(f"/api/v1/receipts/{response.data['id']}/pay-debt/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pay_debt_on_cancelled_receipt(self):
        receipt_id = self.post_receipt([self.phone_line()], is_debt=True).data['id']
        self.client.patch(f'/api/v1/receipts/{receipt_id}/', {'status': 'cancelled'}, format='json')
        response = self.client.patch(f'/api/v1/receipts/{receipt_id}/pay-debt/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Receipt.objects.get(pk=receipt_id).debt_paid)
        self.assertFalse(Payment.objects.filter(receipt_id=receipt_id).exists())
        self.assertEqual(cash_in_register(), Decimal('0.00'))

    def test_delete_cascades_ledger(self):
        response = self.post_receipt([self.phone_line()])
        receipt_id = response.data['id']
        response = self.client.delete(f'/api/v1/receipts/{receipt_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Payment.objects.filter(receipt_id=receipt_id).exists())

    def test_incassate_receipts(self):
        first = self.post_receipt([self.phone_line()]).data['id']
        second = self.post_receipt([self.case_line()], payment_method='card').data['id']
        response = self.client.patch('/api/v1/receipts/incassate/', {'receipt_ids': [first, second]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['modified_count'], 1)
        part = ReceiptPayment.objects.get(receipt_id=first)
        self.assertFalse(part.in_cash_register)
        self.assertIsNone(part.cash_register_date)

    def test_clear_all_requires_editor(self):
        self.post_receipt([self.phone_line()])
        manager = TestDataFactory.create_user(role='manager')
        client = AuthenticatedAPIClient().authenticate_user(manager)
        self.assertEqual(client.delete('/api/v1/receipts/clear-all/').status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete('/api/v1/receipts/clear-all/')
        self.assertEqual(response.data['deleted_count'], 1)
        self.assertFalse(Receipt.objects.exists())


class ReceiptQueryTests(ReceiptTestMixin, TestCase):
    """Test listing filters and stats"""

    def test_list_filters(self):
        self.post_receipt([self.phone_line()])
        self.post_receipt([self.case_line()], payment_method='card', customer_name='Boris')
        response = self.client.get('/api/v1/receipts/?payment_method=card')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer_name'], 'Boris')
        response = self.client.get('/api/v1/receipts/?search=phone')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/receipts/?search=R-000002')
        self.assertEqual(response.data['count'], 1)

    def test_stats_summary_ignores_cancelled(self):
        self.post_receipt([self.phone_line()])
        self.post_receipt([self.case_line()])
        cancelled = self.post_receipt([self.phone_line(serial='SN-002')]).data['id']
        self.client.patch(f'/api/v1/receipts/{cancelled}/', {'status': 'cancelled'}, format='json')

        response = self.client.get('/api/v1/receipts/stats/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_receipts'], 2)
        self.assertEqual(response.data['total_sales'], Decimal('170.00'))
        self.assertEqual(response.data['average_check'], Decimal('85.00'))
