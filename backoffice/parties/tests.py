"""
Test suite for the parties module
Tests: suppliers, client debts and their ledger entries
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backoffice.core.events import CLIENT_DEBT_PAID
from backoffice.core.exceptions import PaymentError
from backoffice.core.models import EventLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.debts.models import Debt
from backoffice.parties.models import Supplier, ClientDebt
from backoffice.parties.views import take_client_payment
from backoffice.payments.models import Payment


class ClientDebtModelTests(TestCase):
    """Test ClientDebt amount bookkeeping"""

    def test_generated_debt_id(self):
        record = TestDataFactory.create_client_debt()
        self.assertTrue(record.debt_id.startswith('CD-'))

    def test_remaining_recomputed_on_save(self):
        record = TestDataFactory.create_client_debt(amount=Decimal('300.00'))
        self.assertEqual(record.remaining_amount, Decimal('300.00'))
        record.paid_amount = Decimal('100.00')
        record.save()
        self.assertEqual(record.remaining_amount, Decimal('200.00'))
        self.assertEqual(record.status, 'active')
        self.assertFalse(record.debt_paid)

    def test_fully_paid_record(self):
        record = TestDataFactory.create_client_debt(amount=Decimal('300.00'))
        record.paid_amount = Decimal('300.00')
        record.save()
        self.assertEqual(record.status, 'paid')
        self.assertTrue(record.debt_paid)


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        response = self.client.post('/api/v1/suppliers/', {'name': 'Mobile Trade', 'phone': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Supplier.objects.filter(name='Mobile Trade').exists())

    def test_create_supplier_blank_name(self):
        response = self.client.post('/api/v1/suppliers/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_suppliers(self):
        TestDataFactory.create_supplier(name='Alpha Phones')
        TestDataFactory.create_supplier(name='Beta Cases')
        response = self.client.get('/api/v1/suppliers/?search=alpha')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['name'] for s in response.data], ['Alpha Phones'])

    def test_delete_supplier_with_unpaid_debt(self):
        supplier = TestDataFactory.create_supplier()
        Debt.objects.create(supplier=supplier, supplier_name=supplier.name, amount=Decimal('100.00'))
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('details', response.data)
        self.assertTrue(Supplier.objects.filter(pk=supplier.pk).exists())

    def test_delete_supplier(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class ClientDebtAPITests(TestCase):
    """Test client debt endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def create_record(self, amount='500.00', notes='case and glass'):
        response = self.client.post('/api/v1/client-debts/', {
            'client_name': 'Anna', 'amount': amount, 'notes': notes
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return ClientDebt.objects.get(debt_id=response.data['debt_id'])

    def test_create_posts_ledger_entry(self):
        record = self.create_record()
        self.assertEqual(record.remaining_amount, Decimal('500.00'))
        payment = Payment.objects.get(client_debt=record)
        self.assertEqual(payment.type, 'client_record')
        self.assertEqual(payment.amount, Decimal('500.00'))
        self.assertEqual(payment.api_type, 'expense')
        self.assertEqual(payment.in_cash_register, 'debt')
        self.assertEqual(payment.supplier, 'Debt')
        self.assertEqual(payment.description, 'DEBT: "Anna" (case and glass)')

    def test_create_rejects_zero_amount(self):
        response = self.client.post('/api/v1/client-debts/', {'client_name': 'Anna', 'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partial_payment(self):
        record = self.create_record()
        response = self.client.patch(f'/api/v1/client-debts/{record.debt_id}/pay/', {
            'payment_amount': '200.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        record.refresh_from_db()
        self.assertEqual(record.remaining_amount, Decimal('300.00'))
        self.assertEqual(record.status, 'active')

        income = Payment.objects.get(client_debt=record, api_type='income')
        self.assertEqual(income.amount, Decimal('200.00'))
        self.assertEqual(income.in_cash_register, 'yes')
        self.assertFalse(Payment.objects.filter(client_debt=record, type='client_record').exists())
        self.assertTrue(EventLog.objects.filter(event_type=CLIENT_DEBT_PAID).exists())

    def test_full_payment_marks_paid(self):
        record = self.create_record(amount='100.00')
        self.client.patch(f'/api/v1/client-debts/{record.debt_id}/pay/', {'payment_amount': '100.00'}, format='json')
        record.refresh_from_db()
        self.assertEqual(record.status, 'paid')
        self.assertTrue(record.debt_paid)

    def test_overpayment_rejected(self):
        record = self.create_record(amount='100.00')
        response = self.client.patch(f'/api/v1/client-debts/{record.debt_id}/pay/', {
            'payment_amount': '150.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_rechecked_against_locked_row(self):
        record = self.create_record(amount='100.00')
        stale = ClientDebt.objects.get(pk=record.pk)
        take_client_payment(stale, Decimal('70.00'), user=self.user)
        with self.assertRaises(PaymentError):
            take_client_payment(stale, Decimal('70.00'), user=self.user)
        record.refresh_from_db()
        self.assertEqual(record.paid_amount, Decimal('70.00'))
        self.assertEqual(Payment.objects.filter(client_debt=record, api_type='income').count(), 1)

    def test_delete_removes_payments(self):
        record = self.create_record()
        self.client.patch(f'/api/v1/client-debts/{record.debt_id}/pay/', {'payment_amount': '50.00'}, format='json')
        response = self.client.delete(f'/api/v1/client-debts/{record.debt_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted_payments'], 2)
        self.assertFalse(Payment.objects.filter(client_debt_id=record.id).exists())

    def test_filter_by_status(self):
        paid = self.create_record(amount='10.00')
        self.create_record(amount='20.00')
        self.client.patch(f'/api/v1/client-debts/{paid.debt_id}/pay/', {'payment_amount': '10.00'}, format='json')
        response = self.client.get('/api/v1/client-debts/?status=paid')
        self.assertEqual([r['debt_id'] for r in response.data], [paid.debt_id])
        response = self.client.get('/api/v1/client-debts/?status=all')
        self.assertEqual(len(response.data), 2)
