"""
Daily sales analytics.

``build_daily_analytics`` works on plain receipt mappings so it can be fed
from the database (see ``receipt_row``) or from any other source.
"""
import calendar
from collections import OrderedDict
from datetime import date as date_cls, datetime, timedelta
from decimal import Decimal

from django.utils import timezone

from backoffice.core.utils import to_decimal

ZERO = Decimal('0.00')
CENT = Decimal('0.01')
PERIODS = ('day', 'week', 'month', 'range')


def _amount(value):
    return to_decimal(value, default=ZERO)


def _receipt_day(value):
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date_cls):
        return value
    return datetime.fromisoformat(str(value)).date()


def receipt_total(receipt):
    """``total_amount`` when present, else ``total``, else None"""
    for key in ('total_amount', 'total'):
        value = receipt.get(key)
        if value is not None and value != '':
            return _amount(value)
    return None


def receipt_cost(receipt):
    return sum(
        (_amount(item.get('cost_price')) * int(item.get('quantity') or 0) for item in receipt.get('items') or []),
        ZERO
    )


def receipt_profit(receipt):
    total = receipt_total(receipt)
    cost = receipt_cost(receipt)
    if total is not None:
        return total - _amount(receipt.get('delivery_cost')) - cost

    sales = ZERO
    for item in receipt.get('items') or []:
        line_total = item.get('total')
        if line_total is None or line_total == '':
            line_total = _amount(item.get('price')) * int(item.get('quantity') or 0)
        sales += _amount(line_total)

    discount_value = _amount(receipt.get('discount_value'))
    if receipt.get('discount_type') == 'percent':
        sales -= sales * discount_value / Decimal('100')
    elif receipt.get('discount_type') == 'fixed':
        sales -= discount_value
    return (sales - cost).quantize(CENT)


def average(revenue, count):
    if not count:
        return ZERO
    return (revenue / count).quantize(CENT)


def build_daily_analytics(receipts):
    """
    Group receipts by calendar day, oldest first.

    Cancelled receipts open their day's bucket but add nothing to it.
    """
    days = OrderedDict()
    for receipt in receipts:
        day = _receipt_day(receipt['date'])
        bucket = days.setdefault(day, {'revenue': ZERO, 'profit': ZERO, 'receipts_count': 0})
        if receipt.get('status') == 'cancelled':
            continue
        bucket['revenue'] += receipt_total(receipt) or ZERO
        bucket['profit'] += receipt_profit(receipt)
        bucket['receipts_count'] += 1

    result = []
    for day in sorted(days):
        bucket = days[day]
        result.append({
            'date': day.isoformat(),
            'revenue': bucket['revenue'],
            'profit': bucket['profit'],
            'receipts_count': bucket['receipts_count'],
            'average_check': average(bucket['revenue'], bucket['receipts_count']),
        })
    return result


def summarize_days(days):
    revenue = sum((day['revenue'] for day in days), ZERO)
    profit = sum((day['profit'] for day in days), ZERO)
    count = sum(day['receipts_count'] for day in days)
    return {
        'revenue': revenue,
        'profit': profit,
        'receipts_count': count,
        'average_check': average(revenue, count),
    }


def _parse_date(value, name):
    if isinstance(value, date_cls):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be a date in YYYY-MM-DD format')


def period_bounds(period, date=None, date_from=None, date_to=None):
    """First and last day (inclusive) of a reporting period"""
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}', expected one of: {', '.join(PERIODS)}")

    if period == 'range':
        if not date_from or not date_to:
            raise ValueError('date_from and date_to are required for a range')
        start, end = _parse_date(date_from, 'date_from'), _parse_date(date_to, 'date_to')
        if start > end:
            raise ValueError('date_from must not be after date_to')
        return start, end

    anchor = _parse_date(date, 'date') if date else timezone.localdate()
    if period == 'day':
        return anchor, anchor
    if period == 'week':
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=6)
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return anchor.replace(day=1), anchor.replace(day=last_day)


def receipt_row(receipt):
    """Flatten a Receipt with prefetched items for the analytics functions"""
    return {
        'date': receipt.date,
        'status': receipt.status,
        'total': receipt.total,
        'delivery_cost': receipt.delivery_cost,
        'discount_type': receipt.discount_type,
        'discount_value': receipt.discount_value,
        'items': [
            {'price': item.price, 'quantity': item.quantity, 'cost_price': item.cost_price, 'total': item.total}
            for item in receipt.items.all()
        ],
    }
