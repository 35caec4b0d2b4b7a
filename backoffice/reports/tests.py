"""
Test suite for the reports module
Tests: daily analytics, period bounds, analytics and dashboard endpoints
"""
from datetime import date, datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.debts.models import Debt
from backoffice.receipts.models import Receipt
from backoffice.reports.analytics import build_daily_analytics, period_bounds, receipt_profit


class DailyAnalyticsTests(TestCase):
    """Test grouping and profit rules of build_daily_analytics"""

    def test_groups_by_day_oldest_first(self):
        days = build_daily_analytics([
            {'date': '2024-05-02T10:00:00', 'total': '200.00', 'delivery_cost': '20.00',
             'items': [{'cost_price': '100.00', 'quantity': 1}]},
            {'date': '2024-05-01T09:00:00', 'total': '80.00', 'items': []},
        ])
        self.assertEqual([day['date'] for day in days], ['2024-05-01', '2024-05-02'])
        self.assertEqual(days[1]['revenue'], Decimal('200.00'))
        self.assertEqual(days[1]['profit'], Decimal('80.00'))
        self.assertEqual(days[1]['average_check'], Decimal('200.00'))

    def test_cancelled_receipt_opens_empty_day(self):
        days = build_daily_analytics([
            {'date': date(2024, 5, 3), 'status': 'cancelled', 'total': '500.00', 'items': []},
        ])
        self.assertEqual(len(days), 1)
        self.assertEqual(days[0]['revenue'], Decimal('0.00'))
        self.assertEqual(days[0]['receipts_count'], 0)
        self.assertEqual(days[0]['average_check'], Decimal('0.00'))

    def test_profit_without_total_applies_discount(self):
        receipt = {
            'discount_type': 'percent',
            'discount_value': '10',
            'items': [{'price': '50.00', 'quantity': 2, 'cost_price': '30.00'}],
        }
        self.assertEqual(receipt_profit(receipt), Decimal('30.00'))
        receipt['discount_type'] = 'fixed'
        self.assertEqual(receipt_profit(receipt), Decimal('30.00'))

    def test_total_amount_preferred_over_total(self):
        days = build_daily_analytics([
            {'date': '2024-05-01', 'total_amount': '120.00', 'total': '999.00', 'items': []},
        ])
        self.assertEqual(days[0]['revenue'], Decimal('120.00'))
        self.assertEqual(days[0]['profit'], Decimal('120.00'))


class PeriodBoundsTests(TestCase):
    """Test reporting period resolution"""

    def test_day(self):
        self.assertEqual(period_bounds('day', '2024-05-15'), (date(2024, 5, 15), date(2024, 5, 15)))

    def test_week_starts_on_monday(self):
        self.assertEqual(period_bounds('week', '2024-05-15'), (date(2024, 5, 13), date(2024, 5, 19)))

    def test_month(self):
        self.assertEqual(period_bounds('month', '2024-02-10'), (date(2024, 2, 1), date(2024, 2, 29)))

    def test_range(self):
        bounds = period_bounds('range', date_from='2024-01-01', date_to='2024-01-31')
        self.assertEqual(bounds, (date(2024, 1, 1), date(2024, 1, 31)))

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            period_bounds('year')
        with self.assertRaises(ValueError):
            period_bounds('range', date_from='2024-01-01')
        with self.assertRaises(ValueError):
            period_bounds('range', date_from='2024-02-01', date_to='2024-01-01')
        with self.assertRaises(ValueError):
            period_bounds('day', '15.05.2024')


class ReportAPITests(TestCase):
    """Test the analytics and dashboard endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.arrival = TestDataFactory.create_arrival()

    def test_analytics_for_a_day(self):
        receipt = TestDataFactory.create_receipt(self.arrival, serial_number='SN-001')
        Receipt.objects.filter(pk=receipt.pk).update(date=timezone.make_aware(datetime(2024, 5, 2, 15)))

        response = self.client.get('/api/v1/reports/analytics/?period=day&date=2024-05-02')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertEqual(response.data['period'], {'type': 'day', 'from': '2024-05-02', 'to': '2024-05-02'})
        self.assertEqual(len(response.data['days']), 1)
        self.assertEqual(response.data['totals']['revenue'], Decimal('150.00'))
        self.assertEqual(response.data['totals']['profit'], Decimal('50.00'))

    def test_analytics_bad_period(self):
        response = self.client.get('/api/v1/reports/analytics/?period=range&date_from=2024-05-02')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_dashboard(self):
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-001')
        TestDataFactory.create_receipt(self.arrival, serial_number='SN-002', status='cancelled')
        Debt.objects.create(supplier_name='Supplier', amount=Decimal('300.00'), paid_amount=Decimal('100.00'))
        TestDataFactory.create_client_debt(amount=Decimal('40.00'))
        TestDataFactory.create_payment(amount=Decimal('150.00'))
        TestDataFactory.create_order(status='pending')
        TestDataFactory.create_order(status='delivered')

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], timezone.localdate().isoformat())
        self.assertEqual(response.data['today']['revenue'], Decimal('150.00'))
        self.assertEqual(response.data['today']['receipts_count'], 1)
        self.assertEqual(response.data['supplier_debt_outstanding'], Decimal('200.00'))
        self.assertEqual(response.data['client_debt_outstanding'], Decimal('40.00'))
        self.assertEqual(response.data['cash_in_register'], Decimal('150.00'))
        self.assertEqual(response.data['orders_by_status'], {'delivered': 1, 'pending': 1})

    def test_requires_staff(self):
        customer = TestDataFactory.create_user(role='customer')
        client = AuthenticatedAPIClient().authenticate_user(customer)
        self.assertEqual(client.get('/api/v1/reports/dashboard/').status_code, status.HTTP_403_FORBIDDEN)
