"""
Report views with cached results

Analytics and the dashboard are cached (see ``core.cache_utils``); receipt,
ledger and debt changes invalidate them through ``core.cache_signals``.
"""
import logging
from decimal import Decimal

from django.core.cache import cache
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.cache_utils import (
    ANALYTICS_CACHE_TTL, ANALYTICS_PREFIX, DASHBOARD_CACHE_TTL, DASHBOARD_PREFIX,
    cached_query, make_cache_key
)
from backoffice.core.permissions import IsBackofficeStaff
from backoffice.debts.models import Debt
from backoffice.orders.models import Order
from backoffice.parties.models import ClientDebt
from backoffice.payments.services import cash_in_register
from backoffice.receipts.models import Receipt
from .analytics import build_daily_analytics, period_bounds, receipt_row, summarize_days

logger = logging.getLogger(__name__)


def receipts_between(start, end):
    queryset = Receipt.objects.filter(date__date__gte=start, date__date__lte=end).prefetch_related('items')
    return [receipt_row(receipt) for receipt in queryset.order_by('date')]


def build_analytics(period, start, end):
    days = build_daily_analytics(receipts_between(start, end))
    return {
        'period': {'type': period, 'from': start.isoformat(), 'to': end.isoformat()},
        'days': days,
        'totals': summarize_days(days),
    }


@cached_query(cache_ttl=DASHBOARD_CACHE_TTL, key_prefix=DASHBOARD_PREFIX)
def build_dashboard(today):
    month_start = today.replace(day=1)
    today_totals = summarize_days(build_daily_analytics(receipts_between(today, today)))
    month_totals = summarize_days(build_daily_analytics(receipts_between(month_start, today)))

    supplier_debt = Debt.objects.exclude(status='paid').aggregate(total=Sum('remaining_amount'))['total']
    client_debt = ClientDebt.objects.filter(status='active').aggregate(total=Sum('remaining_amount'))['total']
    orders_by_status = {
        row['status']: row['count']
        for row in Order.objects.values('status').annotate(count=Count('id')).order_by('status')
    }

    return {
        'date': today.isoformat(),
        'today': {'revenue': today_totals['revenue'], 'profit': today_totals['profit'],
                  'receipts_count': today_totals['receipts_count']},
        'month': {'revenue': month_totals['revenue'], 'profit': month_totals['profit'],
                  'receipts_count': month_totals['receipts_count']},
        'supplier_debt_outstanding': supplier_debt or Decimal('0.00'),
        'client_debt_outstanding': client_debt or Decimal('0.00'),
        'cash_in_register': cash_in_register(),
        'orders_by_status': orders_by_status,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def analytics(request):
    """
    Daily revenue and profit for a period

    Query params: period (day|week|month|range), date, date_from, date_to
    """
    period = request.query_params.get('period', 'day')
    try:
        start, end = period_bounds(
            period,
            date=request.query_params.get('date') or None,
            date_from=request.query_params.get('date_from') or None,
            date_to=request.query_params.get('date_to') or None,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    cache_key = make_cache_key(ANALYTICS_PREFIX, period, start.isoformat(), end.isoformat())
    data = cache.get(cache_key)
    if data is not None:
        logger.debug(f"Analytics cache HIT ({period} {start}..{end})")
        response = Response(data)
        response['X-Cache'] = 'HIT'
        return response

    data = build_analytics(period, start, end)
    cache.set(cache_key, data, ANALYTICS_CACHE_TTL)
    response = Response(data)
    response['X-Cache'] = 'MISS'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def dashboard(request):
    """Today's and this month's sales, outstanding debts, cash and orders"""
    return Response(build_dashboard(timezone.localdate()))
