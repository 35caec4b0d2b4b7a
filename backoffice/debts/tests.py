"""
Test suite for the debts module
Tests: status rules, payments from the register, deletion refunds, stats, overdue command
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.events import DEBT_PAID, DEBT_DELETED
from backoffice.core.exceptions import PaymentError
from backoffice.core.models import EventLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.debts import services
from backoffice.debts.models import Debt
from backoffice.payments.models import Payment
from backoffice.payments.services import CATEGORY_SUPPLIER_DEBT, CATEGORY_DEBT_REFUND, cash_in_register


class DebtModelTests(TestCase):
    """Test debt status computation"""

    def make_debt(self, amount='100.00', paid='0.00', due_in_days=4):
        return Debt.objects.create(
            supplier_name='Supplier',
            amount=Decimal(amount),
            paid_amount=Decimal(paid),
            due_date=timezone.localdate() + timedelta(days=due_in_days)
        )

    def test_active(self):
        debt = self.make_debt()
        self.assertEqual(debt.status, 'active')
        self.assertEqual(debt.remaining_amount, Decimal('100.00'))

    def test_partially_paid(self):
        self.assertEqual(self.make_debt(paid='40.00').status, 'partially_paid')

    def test_paid(self):
        debt = self.make_debt(paid='100.00')
        self.assertEqual(debt.status, 'paid')
        self.assertEqual(debt.remaining_amount, Decimal('0.00'))

    def test_overdue(self):
        self.assertEqual(self.make_debt(due_in_days=-1).status, 'overdue')

    def test_generated_debt_id(self):
        self.assertTrue(self.make_debt().debt_id.startswith('debt_'))


class DebtAPITests(TestCase):
    """Test debt endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Mobile Trade')
        response = self.client.post('/api/v1/arrivals/', {
            'date': '2024-03-10',
            'supplier': self.supplier.id,
            'items': [{
                'product_name': 'Phone X',
                'serial_numbers': ['SN-001', 'SN-002'],
                'price': '150.00',
                'cost_price': '100.00',
                'barcode': '4600001',
            }],
        }, format='json')
        self.debt = Debt.objects.get(arrival_id=response.data['id'])

    def test_list_and_filter(self):
        response = self.client.get('/api/v1/debts/?status=all')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/debts/?status=paid')
        self.assertEqual(len(response.data), 0)
        response = self.client.get(f'/api/v1/debts/?supplier={self.supplier.id}')
        self.assertEqual(len(response.data), 1)

    def test_retrieve_by_pk_or_public_id(self):
        by_pk = self.client.get(f'/api/v1/debts/{self.debt.pk}/')
        by_id = self.client.get(f'/api/v1/debts/{self.debt.debt_id}/')
        self.assertEqual(by_pk.status_code, status.HTTP_200_OK)
        self.assertEqual(by_pk.data['debt_id'], by_id.data['debt_id'])
        self.assertEqual(by_pk.data['arrival_id'], self.debt.arrival_id)

    def test_patch_only_changes_notes_and_due_date(self):
        response = self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/', {
            'notes': 'call on Monday', 'amount': '1.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.debt.refresh_from_db()
        self.assertEqual(self.debt.notes, 'call on Monday')
        self.assertEqual(self.debt.amount, Decimal('200.00'))

    def test_partial_payment_posts_register_expense(self):
        response = self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/pay/', {'amount': '50.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'partially_paid')

        payment = Payment.objects.get(debt=self.debt)
        self.assertEqual(payment.amount, Decimal('-50.00'))
        self.assertEqual(payment.api_type, 'expense')
        self.assertEqual(payment.category, CATEGORY_SUPPLIER_DEBT)
        self.assertEqual(payment.in_cash_register, 'yes')
        self.assertEqual(
            payment.description,
            'Supplier debt payment "Mobile Trade": Phone X (2 pcs) [S/N: SN-001, SN-002] [BC: 4600001] (10.03.2024)'
        )
        self.assertEqual(cash_in_register(), Decimal('-50.00'))
        self.assertTrue(EventLog.objects.filter(event_type=DEBT_PAID).exists())

    def test_full_payment(self):
        self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/pay/', {'amount': '200.00'}, format='json')
        self.debt.refresh_from_db()
        self.assertEqual(self.debt.status, 'paid')
        self.assertEqual(self.debt.remaining_amount, Decimal('0.00'))

    def test_payment_validation(self):
        for amount in ('0', '-5', '200.01', 'abc'):
            response = self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/pay/', {'amount': amount}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, amount)
        self.assertFalse(Payment.objects.filter(debt=self.debt).exists())

    def test_payment_rechecked_against_locked_row(self):
        """A second payment validated against a stale copy cannot overpay"""
        stale = Debt.objects.get(pk=self.debt.pk)
        services.pay_debt(stale, Decimal('150.00'))
        with self.assertRaises(PaymentError):
            services.pay_debt(stale, Decimal('150.00'))
        self.debt.refresh_from_db()
        self.assertEqual(self.debt.paid_amount, Decimal('150.00'))
        self.assertEqual(Payment.objects.filter(debt=self.debt).count(), 1)

    def test_delete_paid_debt_refunds_once(self):
        self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/pay/', {'amount': '80.00'}, format='json')
        response = self.client.delete(f'/api/v1/debts/{self.debt.debt_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['refund_amount'], Decimal('80.00'))

        # The expense stays; the refund brings the register back to zero
        self.assertTrue(Payment.objects.filter(category=CATEGORY_SUPPLIER_DEBT).exists())
        self.assertEqual(Payment.objects.get(category=CATEGORY_DEBT_REFUND).amount, Decimal('80.00'))
        self.assertEqual(cash_in_register(), Decimal('0.00'))
        self.assertTrue(EventLog.objects.filter(event_type=DEBT_DELETED).exists())

    def test_delete_unpaid_debt(self):
        response = self.client.delete(f'/api/v1/debts/{self.debt.pk}/')
        self.assertEqual(response.data['refund_amount'], Decimal('0.00'))
        self.assertFalse(Payment.objects.filter(category=CATEGORY_DEBT_REFUND).exists())

    def test_stats_summary(self):
        self.client.patch(f'/api/v1/debts/{self.debt.debt_id}/pay/', {'amount': '50.00'}, format='json')
        response = self.client.get('/api/v1/debts/stats/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_debt'], Decimal('200.00'))
        self.assertEqual(response.data['remaining_debt'], Decimal('150.00'))
        self.assertEqual(response.data['paid_debt'], Decimal('50.00'))
        self.assertEqual(response.data['active_debts'], 1)


class MarkOverdueCommandTests(TestCase):
    """Test the mark_overdue_debts management command"""

    def setUp(self):
        self.debt = Debt.objects.create(
            supplier_name='Supplier',
            amount=Decimal('100.00'),
            due_date=timezone.localdate() + timedelta(days=1)
        )

    def run_command(self, *args):
        out = StringIO()
        call_command('mark_overdue_debts', *args, stdout=out)
        return out.getvalue()

    def test_dry_run_changes_nothing(self):
        later = (timezone.localdate() + timedelta(days=5)).isoformat()
        output = self.run_command('--dry-run', f'--date={later}')
        self.assertIn(self.debt.debt_id, output)
        self.debt.refresh_from_db()
        self.assertEqual(self.debt.status, 'active')

    def test_marks_overdue(self):
        later = (timezone.localdate() + timedelta(days=5)).isoformat()
        self.run_command(f'--date={later}')
        self.debt.refresh_from_db()
        self.assertEqual(self.debt.status, 'overdue')

    def test_nothing_due_yet(self):
        output = self.run_command()
        self.assertIn('No overdue debts found', output)
