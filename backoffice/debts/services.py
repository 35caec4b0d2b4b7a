"""Supplier debt payments and removal"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from backoffice.core.events import publish_event, DEBT_PAID, DEBT_DELETED
from backoffice.core.exceptions import PaymentError
from backoffice.core.utils import format_date
from backoffice.payments.services import post_payment, CATEGORY_SUPPLIER_DEBT, CATEGORY_DEBT_REFUND
from .models import Debt

logger = logging.getLogger(__name__)


def describe_item(item):
    text = f"{item.product_name} ({item.quantity} pcs)"
    if item.serial_numbers:
        text += f" [S/N: {', '.join(item.serial_numbers)}]"
    if item.barcode:
        text += f" [BC: {item.barcode}]"
    return text


def payment_description(debt, items):
    lines = '; '.join(describe_item(item) for item in items)
    return f'Supplier debt payment "{debt.supplier_name}": {lines} ({format_date(debt.date)})'


def payment_notes(items):
    return '\n'.join(f"{item.product_name}: {item.quantity} pcs x {item.cost_price}" for item in items)


def pay_debt(debt, amount, user=None):
    """Pay part of a supplier debt in cash from the register"""
    with transaction.atomic():
        debt = Debt.objects.select_for_update().get(pk=debt.pk)
        # Re-checked under the lock
        if amount > debt.remaining_amount:
            raise PaymentError(f"Payment amount exceeds the remaining debt ({debt.remaining_amount})")
        debt.paid_amount += amount
        debt.save()

        items = list(debt.items.all())
        payment = post_payment(
            user=user,
            type='debt',
            amount=-amount,
            api_type='expense',
            payment_method='cash',
            category=CATEGORY_SUPPLIER_DEBT,
            in_cash_register='yes',
            supplier=debt.supplier_name,
            supplier_ref_id=debt.supplier_id,
            description=payment_description(debt, items),
            notes=payment_notes(items),
            debt=debt,
            arrival_id=debt.arrival_id,
        )

    logger.info(f"Debt {debt.debt_id} paid {amount}; remaining {debt.remaining_amount} ({debt.status})")
    publish_event(DEBT_PAID, {
        'debt_id': debt.debt_id,
        'arrival_id': debt.arrival_id,
        'amount': str(amount),
        'remaining_amount': str(debt.remaining_amount),
        'status': debt.status,
    })
    return debt, payment


def delete_debt(debt, user=None):
    """
    Remove a debt. Expense entries already posted stay in the ledger and the
    paid part is returned to the register as a single income entry.
    """
    refund = debt.paid_amount
    debt_id = debt.debt_id
    with transaction.atomic():
        if refund > 0:
            post_payment(
                user=user,
                type='cash',
                amount=refund,
                api_type='income',
                payment_method='cash',
                category=CATEGORY_DEBT_REFUND,
                in_cash_register='yes',
                supplier=debt.supplier_name,
                supplier_ref_id=debt.supplier_id,
                description=f'Refund to the register after deleting debt "{debt.supplier_name}" ({format_date(debt.date)})',
                notes=f"Automatic refund of {refund} after deleting a paid debt",
            )
        debt.delete()

    logger.info(f"Debt {debt_id} deleted, refund {refund}")
    publish_event(DEBT_DELETED, {'debt_id': debt_id, 'refund_amount': str(refund)})
    return refund


def debt_summary():
    zero = Decimal('0.00')
    totals = Debt.objects.aggregate(
        total_debt=Sum('amount'),
        remaining_debt=Sum('remaining_amount'),
        paid_debt=Sum('paid_amount'),
        active_debts=Count('id', filter=Q(status__in=['active', 'partially_paid'])),
        overdue=Count('id', filter=Q(status='overdue')),
    )
    return {
        'total_debt': totals['total_debt'] or zero,
        'remaining_debt': totals['remaining_debt'] or zero,
        'paid_debt': totals['paid_debt'] or zero,
        'active_debts': totals['active_debts'],
        'overdue': totals['overdue'],
    }


def mark_overdue(today=None, dry_run=False):
    """Unpaid, untouched debts past their due date become ``overdue``"""
    today = today or timezone.localdate()
    candidates = Debt.objects.filter(status='active', due_date__lt=today, remaining_amount__gt=0)
    debt_ids = list(candidates.values_list('debt_id', flat=True))
    if not dry_run and debt_ids:
        candidates.update(status='overdue', updated_at=timezone.now())
    return debt_ids
