"""Ledger postings and cash register calculations"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from backoffice.core.events import publish_event, PAYMENT_CREATED, INCASSATION
from backoffice.core.exceptions import PaymentError
from .models import Payment

logger = logging.getLogger(__name__)

CATEGORY_SALE = 'Sale'
CATEGORY_INCASSATION = 'Incassation'
CATEGORY_SUPPLIER_DEBT = 'Supplier debt payment'
CATEGORY_ARRIVAL_REFUND = 'Arrival deletion refund'
CATEGORY_DEBT_REFUND = 'Debt deletion refund'

REFUND_CATEGORIES = (CATEGORY_ARRIVAL_REFUND, CATEGORY_DEBT_REFUND)

ZERO = Decimal('0.00')


def ledger_type_for_method(method):
    """Ledger type of a receipt payment part"""
    if method == 'cash':
        return 'cash'
    if method == 'keb':
        return 'keb'
    return 'transfer'


def post_payment(user=None, **fields):
    """Create a ledger entry and announce it on the event feed"""
    fields.setdefault('date', timezone.now())
    if fields.get('in_cash_register') == 'yes':
        fields.setdefault('cash_register_date', fields['date'])
    if user is not None and user.is_authenticated:
        fields.setdefault('created_by', user)
        fields.setdefault('admin_name', user.display_name)

    payment = Payment.objects.create(**fields)
    publish_event(PAYMENT_CREATED, {
        'payment_id': payment.payment_id,
        'type': payment.type,
        'amount': str(payment.amount),
        'category': payment.category,
        'in_cash_register': payment.in_cash_register,
    })
    return payment


def cash_in_register():
    """Sum of every ledger amount currently counted in the cash register"""
    total = Payment.objects.filter(in_cash_register='yes').aggregate(total=Sum('amount'))['total']
    return total or ZERO


def incassate(user, mode='all', amount=None):
    """
    Take cash out of the register.

    ``mode='all'`` empties the register; ``mode='partial'`` takes ``amount``.
    The withdrawal is a negative entry inside the register, and the income
    entries it covers are flagged ``incassated``.
    """
    with transaction.atomic():
        # Serialize concurrent collections on the register rows
        list(Payment.objects.select_for_update().filter(in_cash_register='yes').values_list('id', flat=True))
        available = cash_in_register()
        if available <= 0:
            raise PaymentError('There is no cash in the register')

        if mode == 'all':
            amount = available
        elif mode == 'partial':
            if amount is None or amount <= 0:
                raise PaymentError('Incassation amount must be greater than zero')
            if amount > available:
                raise PaymentError(
                    f'Incassation amount exceeds the cash in the register ({available})',
                    details=[f'requested: {amount}', f'available: {available}']
                )
        else:
            raise PaymentError(f'Unknown incassation type: {mode}')

        now = timezone.now()
        entry = post_payment(
            user=user,
            type='cash',
            amount=-amount,
            api_type='expense',
            payment_method='cash',
            category=CATEGORY_INCASSATION,
            description=f'Incassation of {amount}',
            in_cash_register='yes',
            cash_register_date=now,
            status='incassated',
            incassation_date=now,
            date=now,
        )
        marked = Payment.objects.filter(
            in_cash_register='yes', api_type='income', status='active', date__lte=now
        ).update(status='incassated', incassation_date=now)

    logger.info(f"Incassation of {amount} ({mode}), {marked} income entries marked incassated")
    publish_event(INCASSATION, {
        'payment_id': entry.payment_id, 'amount': str(amount), 'type': mode, 'marked_entries': marked
    })
    return entry, marked


def monthly_summary(year, month):
    """Totals for one calendar month of the ledger"""
    queryset = Payment.objects.filter(date__year=year, date__month=month)

    sales = queryset.filter(amount__gt=0).exclude(
        Q(category=CATEGORY_INCASSATION) | Q(api_type='expense') | Q(category__in=REFUND_CATEGORIES)
    )

    def total(qs):
        return qs.aggregate(total=Sum('amount'))['total'] or ZERO

    cash_amount = total(sales.filter(type='cash'))
    transfer_amount = total(sales.filter(type='transfer'))
    keb_amount = total(sales.filter(type='keb'))
    incassated_amount = abs(total(queryset.filter(category=CATEGORY_INCASSATION)))

    return {
        'month': f'{year:04d}-{month:02d}',
        'total_amount': total(sales),
        'cash_amount': cash_amount,
        'transfer_amount': transfer_amount,
        'keb_amount': keb_amount,
        'incassated_amount': incassated_amount,
        'not_in_cash_register_amount': transfer_amount + keb_amount,
        'cash_in_register': cash_in_register(),
    }


def stats_summary(date_from=None, date_to=None):
    """Income against expense, grouped by ``api_type``"""
    queryset = Payment.objects.all()
    if date_from:
        queryset = queryset.filter(date__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(date__date__lte=date_to)

    summary = {
        'total_income': ZERO,
        'total_expense': ZERO,
        'net_profit': ZERO,
        'income_count': 0,
        'expense_count': 0,
    }
    for row in queryset.values('api_type').annotate(total=Sum('amount'), count=Count('id')):
        if row['api_type'] == 'income':
            summary['total_income'] = row['total'] or ZERO
            summary['income_count'] = row['count']
        elif row['api_type'] == 'expense':
            summary['total_expense'] = abs(row['total'] or ZERO)
            summary['expense_count'] = row['count']

    summary['net_profit'] = summary['total_income'] - summary['total_expense']
    return summary
