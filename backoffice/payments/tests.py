"""
Test suite for the payments module
Tests: ledger listing and edits, role checks, cash register, incassation, monthly summary
"""
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.events import INCASSATION
from backoffice.core.models import EventLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.payments.models import Payment
from backoffice.payments.services import CATEGORY_INCASSATION, cash_in_register


def aware(year, month, day, hour=12):
    return timezone.make_aware(datetime(year, month, day, hour))


class PaymentAPITests(TestCase):
    """Test ledger entry endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_reports_edit_rights(self):
        TestDataFactory.create_payment()
        response = self.client.get('/api/v1/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['page_size'], 50)
        self.assertEqual(response['X-Can-Edit'], 'true')
        self.assertEqual(response['X-User-Role'], 'admin')

        manager = TestDataFactory.create_user(role='manager')
        response = AuthenticatedAPIClient().authenticate_user(manager).get('/api/v1/payments/')
        self.assertEqual(response['X-Can-Edit'], 'false')

    def test_customers_have_no_access(self):
        customer = TestDataFactory.create_user(role='customer')
        response = AuthenticatedAPIClient().authenticate_user(customer).get('/api/v1/payments/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters(self):
        TestDataFactory.create_payment(amount=Decimal('100.00'), description='Sale of a case')
        TestDataFactory.create_payment(amount=Decimal('-40.00'), api_type='expense', in_cash_register='no',
                                       description='Courier')
        self.assertEqual(self.client.get('/api/v1/payments/?type=all').data['count'], 2)
        self.assertEqual(self.client.get('/api/v1/payments/?api_type=expense').data['count'], 1)
        self.assertEqual(self.client.get('/api/v1/payments/?in_cash_register=yes').data['count'], 1)
        response = self.client.get('/api/v1/payments/?search=courier')
        self.assertEqual(response.data['results'][0]['description'], 'Courier')

    def test_create_expense_is_stored_negative(self):
        response = self.client.post('/api/v1/payments/', {
            'type': 'cash',
            'amount': '250.00',
            'api_type': 'expense',
            'description': 'Rent',
            'in_cash_register': 'yes',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payment = Payment.objects.get(pk=response.data['id'])
        self.assertEqual(payment.amount, Decimal('-250.00'))
        self.assertTrue(payment.payment_id.startswith('payment_'))
        self.assertEqual(payment.admin_name, self.admin.display_name)
        self.assertEqual(cash_in_register(), Decimal('-250.00'))

    def test_duplicate_payment_id_rejected(self):
        existing = TestDataFactory.create_payment()
        response = self.client.post('/api/v1/payments/', {
            'payment_id': existing.payment_id,
            'type': 'cash',
            'amount': '10.00',
            'description': 'Duplicate',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_by_pk_or_public_id(self):
        payment = TestDataFactory.create_payment()
        by_pk = self.client.get(f'/api/v1/payments/{payment.pk}/')
        by_id = self.client.get(f'/api/v1/payments/{payment.payment_id}/')
        self.assertEqual(by_pk.data['payment_id'], by_id.data['payment_id'])
        self.assertEqual(self.client.get('/api/v1/payments/payment_missing/').status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_incassated_keeps_other_fields(self):
        payment = TestDataFactory.create_payment(amount=Decimal('100.00'))
        response = self.client.patch(f'/api/v1/payments/{payment.payment_id}/', {
            'status': 'incassated', 'amount': '1.00', 'description': 'changed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'incassated')
        self.assertIsNotNone(payment.incassation_date)
        self.assertEqual(payment.amount, Decimal('100.00'))
        self.assertNotEqual(payment.description, 'changed')

    def test_mark_incassated_with_date(self):
        payment = TestDataFactory.create_payment()
        response = self.client.patch(f'/api/v1/payments/{payment.payment_id}/', {
            'status': 'incassated', 'incassation_date': '2024-03-15T18:30:00Z'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        payment.refresh_from_db()
        self.assertEqual(payment.incassation_date, datetime(2024, 3, 15, 18, 30, tzinfo=dt_timezone.utc))

    def test_mark_incassated_bad_date_rejected(self):
        payment = TestDataFactory.create_payment()
        response = self.client.patch(f'/api/v1/payments/{payment.payment_id}/', {
            'status': 'incassated', 'incassation_date': 'not-a-date'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('incassation_date', response.data)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'active')
        self.assertIsNone(payment.incassation_date)

    def test_update_entry(self):
        payment = TestDataFactory.create_payment()
        response = self.client.patch(f'/api/v1/payments/{payment.pk}/', {'notes': 'checked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'checked')

    def test_manager_cannot_edit_or_delete(self):
        payment = TestDataFactory.create_payment()
        manager = TestDataFactory.create_user(role='manager')
        client = AuthenticatedAPIClient().authenticate_user(manager)
        response = client.patch(f'/api/v1/payments/{payment.pk}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.delete(f'/api/v1/payments/{payment.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(client.get(f'/api/v1/payments/{payment.pk}/').status_code, status.HTTP_200_OK)

    def test_delete_entry(self):
        payment = TestDataFactory.create_payment()
        response = self.client.delete(f'/api/v1/payments/{payment.payment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Payment.objects.exists())

    def test_clear_all_admin_only(self):
        TestDataFactory.create_payment()
        TestDataFactory.create_payment()
        accountant = TestDataFactory.create_user(role='accountant')
        response = AuthenticatedAPIClient().authenticate_user(accountant).delete('/api/v1/payments/clear-all/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.delete('/api/v1/payments/clear-all/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted_count'], 2)


class CashRegisterTests(TestCase):
    """Test the register balance and incassation"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_payment(amount=Decimal('300.00'))
        TestDataFactory.create_payment(amount=Decimal('-50.00'), api_type='expense')
        TestDataFactory.create_payment(amount=Decimal('999.00'), type='transfer', in_cash_register='no')

    def test_cash_register_total(self):
        response = self.client.get('/api/v1/payments/cash-register/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['cash_in_register'], Decimal('250.00'))

    def test_incassate_all(self):
        response = self.client.post('/api/v1/payments/incassation/', {'type': 'all'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount'], Decimal('250.00'))
        self.assertEqual(response.data['marked_count'], 1)
        self.assertEqual(response.data['cash_in_register'], Decimal('0.00'))

        entry = Payment.objects.get(category=CATEGORY_INCASSATION)
        self.assertEqual(entry.amount, Decimal('-250.00'))
        self.assertEqual(entry.status, 'incassated')
        self.assertEqual(entry.in_cash_register, 'yes')
        self.assertTrue(EventLog.objects.filter(event_type=INCASSATION).exists())

    def test_incassate_partial(self):
        response = self.client.post('/api/v1/payments/incassation/', {'type': 'partial', 'amount': '100.00'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(cash_in_register(), Decimal('150.00'))

    def test_partial_over_register_rejected(self):
        response = self.client.post('/api/v1/payments/incassation/', {'type': 'partial', 'amount': '250.01'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('details', response.data)
        self.assertFalse(Payment.objects.filter(category=CATEGORY_INCASSATION).exists())

    def test_partial_needs_amount(self):
        response = self.client.post('/api/v1/payments/incassation/', {'type': 'partial'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_register_rejected(self):
        self.client.post('/api/v1/payments/incassation/', {'type': 'all'}, format='json')
        response = self.client.post('/api/v1/payments/incassation/', {'type': 'all'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'There is no cash in the register')


class PaymentSummaryTests(TestCase):
    """Test monthly and overall summaries"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        may = aware(2024, 5, 10)
        TestDataFactory.create_payment(amount=Decimal('100.00'), date=may)
        TestDataFactory.create_payment(amount=Decimal('50.00'), type='transfer', in_cash_register='no', date=may)
        TestDataFactory.create_payment(amount=Decimal('25.00'), type='keb', in_cash_register='no', date=may)
        TestDataFactory.create_payment(amount=Decimal('-30.00'), api_type='expense', date=may)
        TestDataFactory.create_payment(amount=Decimal('-80.00'), api_type='expense', category=CATEGORY_INCASSATION,
                                       date=may)
        TestDataFactory.create_payment(amount=Decimal('700.00'), date=aware(2024, 6, 1))

    def test_monthly_summary(self):
        response = self.client.get('/api/v1/payments/monthly-summary/?month=2024-05')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['month'], '2024-05')
        self.assertEqual(response.data['total_amount'], Decimal('175.00'))
        self.assertEqual(response.data['cash_amount'], Decimal('100.00'))
        self.assertEqual(response.data['transfer_amount'], Decimal('50.00'))
        self.assertEqual(response.data['keb_amount'], Decimal('25.00'))
        self.assertEqual(response.data['incassated_amount'], Decimal('80.00'))
        self.assertEqual(response.data['not_in_cash_register_amount'], Decimal('75.00'))

    def test_monthly_summary_bad_month(self):
        response = self.client.get('/api/v1/payments/monthly-summary/?month=May')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats_summary(self):
        response = self.client.get('/api/v1/payments/stats/summary/?date_from=2024-05-01&date_to=2024-05-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_income'], Decimal('175.00'))
        self.assertEqual(response.data['total_expense'], Decimal('110.00'))
        self.assertEqual(response.data['net_profit'], Decimal('65.00'))
        self.assertEqual(response.data['income_count'], 3)
        self.assertEqual(response.data['expense_count'], 2)
