"""
Arrival side effects: supplier debts, sold-goods checks and stock availability.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from backoffice.core.events import publish_event, publish_unit_events, PRODUCT_ADDED, PRODUCT_REMOVED, ARRIVAL_DELETED
from backoffice.core.exceptions import BackofficeError
from backoffice.core.utils import format_date
from backoffice.debts.models import Debt, DebtItem
from backoffice.payments.services import post_payment, CATEGORY_ARRIVAL_REFUND
from backoffice.receipts.models import ReceiptItem
from .models import Arrival, ArrivalItem

logger = logging.getLogger(__name__)


def debt_notes(arrival, items):
    names = ', '.join(item.product_name for item in items if item.is_payable)
    return f"Debt for arrival of {format_date(arrival.date)} ({names})"


def snapshot_debt_items(debt, items):
    debt.items.all().delete()
    DebtItem.objects.bulk_create([
        DebtItem(
            debt=debt,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            price=item.price,
            cost_price=item.cost_price,
            is_accessory=item.is_accessory,
            is_service=item.is_service,
            serial_numbers=list(item.serial_numbers or []),
            barcode=item.barcode,
        )
        for item in items
    ])


def create_debt_for_arrival(arrival, user=None):
    """Raise the supplier debt for a new arrival; returns None when nothing is payable"""
    items = list(arrival.items.all())
    amount = arrival.payable_amount()
    if not arrival.supplier_id or not arrival.supplier_name or amount <= 0:
        return None

    debt = Debt.objects.create(
        arrival=arrival,
        supplier_id=arrival.supplier_id,
        supplier_name=arrival.supplier_name,
        amount=amount,
        paid_amount=Decimal('0.00'),
        date=arrival.date,
        due_date=arrival.date + timedelta(days=settings.BACKOFFICE_DEBT_DUE_DAYS),
        notes=debt_notes(arrival, items),
        created_by=user,
    )
    snapshot_debt_items(debt, items)
    logger.info(f"Debt {debt.debt_id} of {amount} created for arrival {arrival.id} ({arrival.supplier_name})")
    return debt


def sync_debt_with_arrival(arrival):
    """Re-price the linked debt after the arrival's items changed; payments already made are kept"""
    debt = Debt.objects.filter(arrival=arrival).first()
    if debt is None:
        return None
    items = list(arrival.items.all())
    debt.amount = arrival.payable_amount()
    if debt.paid_amount > debt.amount:
        logger.warning(
            f"Debt {debt.debt_id} already paid {debt.paid_amount}, more than the new amount {debt.amount}"
        )
    debt.supplier_id = arrival.supplier_id
    if arrival.supplier_name:
        debt.supplier_name = arrival.supplier_name
    debt.notes = debt_notes(arrival, items)
    debt.save()
    snapshot_debt_items(debt, items)
    logger.info(f"Debt {debt.debt_id} updated for arrival {arrival.id}: amount {debt.amount}, remaining {debt.remaining_amount}")
    return debt


def sold_lines(arrival):
    """Receipt lines of live (non-cancelled) receipts that sold goods from this arrival"""
    return list(
        ReceiptItem.objects.filter(arrival=arrival)
        .exclude(receipt__status='cancelled')
        .select_related('receipt')
        .order_by('receipt__receipt_number', 'id')
    )


def describe_sold_line(line):
    if line.serial_number:
        what = f'"{line.product_name}" (S/N: {line.serial_number})'
    else:
        what = f'"{line.product_name}" ({line.quantity} pcs)'
    return f"{what} -> receipt {line.receipt.receipt_number}"


def find_update_conflicts(arrival, new_items):
    """Sold lines no longer covered by the new item list of the arrival"""
    conflicts = []
    for line in sold_lines(arrival):
        if line.serial_number:
            covered = any(
                item['product_name'] == line.product_name and line.serial_number in (item.get('serial_numbers') or [])
                for item in new_items
            )
        else:
            covered = any(
                item['product_name'] == line.product_name
                and bool(item.get('is_accessory')) == line.is_accessory
                and bool(item.get('is_service')) == line.is_service
                and (item.get('quantity') or 0) >= line.quantity
                for item in new_items
            )
        if not covered:
            conflicts.append(describe_sold_line(line))
    return conflicts


def publish_arrival_units(event_type, arrival, items=None):
    publish_unit_events(event_type, items if items is not None else arrival.items.all(), arrival.id)


def announce_arrival_created(arrival):
    publish_arrival_units(PRODUCT_ADDED, arrival)


def announce_arrival_replaced(arrival, old_items):
    publish_arrival_units(PRODUCT_REMOVED, arrival, old_items)
    publish_arrival_units(PRODUCT_ADDED, arrival)


def delete_arrival(arrival, user=None):
    """
    Delete an arrival whose goods are unsold, with its supplier debt.

    Returns the refunded amount: what had already been paid on the debt
    comes back into the cash register as income.
    """
    conflicts = [describe_sold_line(line) for line in sold_lines(arrival)]
    if conflicts:
        raise BackofficeError(
            'The arrival cannot be deleted: its goods are used in active receipts. '
            'Cancel or delete those receipts first.',
            details=conflicts
        )

    arrival_id = arrival.id
    supplier_name = arrival.supplier_name
    items = list(arrival.items.all())
    refund = Decimal('0.00')

    with transaction.atomic():
        debt = Debt.objects.filter(arrival=arrival).first()
        if debt is not None:
            refund = debt.paid_amount
            debt.delete()

        if refund > 0:
            post_payment(
                user=user,
                type='cash',
                amount=refund,
                api_type='income',
                payment_method='cash',
                category=CATEGORY_ARRIVAL_REFUND,
                in_cash_register='yes',
                supplier=supplier_name,
                supplier_ref_id=arrival.supplier_id,
                description=(
                    f"Refund to the register after deleting the arrival of {format_date(arrival.date)} "
                    f"({supplier_name or 'no supplier'})"
                ),
                notes=f"Automatic refund of {refund} after deleting a paid arrival",
            )
            logger.info(f"Arrival {arrival_id} deleted with refund {refund} to the cash register")

        arrival.delete()

    publish_unit_events(PRODUCT_REMOVED, items, arrival_id)
    publish_event(ARRIVAL_DELETED, {'arrival_id': arrival_id, 'supplier_name': supplier_name})
    return refund


def clear_all_arrivals():
    """Delete every arrival and every supplier debt; returns the two counts"""
    with transaction.atomic():
        debts_count = Debt.objects.count()
        arrivals_count = Arrival.objects.count()
        Debt.objects.all().delete()
        Arrival.objects.all().delete()
    logger.warning(f"Cleared {arrivals_count} arrivals and {debts_count} debts")
    return arrivals_count, debts_count


def sold_quantities():
    """
    What live receipts have taken out of stock.

    Returns the set of sold ``(arrival_id, serial)`` pairs and a mapping of
    ``(arrival_id, product_name, is_accessory, is_service)`` to sold quantity.
    """
    sold_serials = set()
    sold_counts = defaultdict(int)
    lines = ReceiptItem.objects.exclude(receipt__status='cancelled').filter(arrival__isnull=False).values(
        'arrival_id', 'product_name', 'serial_number', 'quantity', 'is_accessory', 'is_service'
    )
    for line in lines:
        if line['serial_number']:
            sold_serials.add((line['arrival_id'], line['serial_number']))
        else:
            key = (line['arrival_id'], line['product_name'], line['is_accessory'], line['is_service'])
            sold_counts[key] += line['quantity']
    return sold_serials, sold_counts


def available_products(search=''):
    """Sellable units across all arrivals, newest arrivals first"""
    term = (search or '').strip().lower()
    sold_serials, sold_counts = sold_quantities()
    products = []

    items = ArrivalItem.objects.select_related('arrival').order_by('-arrival__date', '-arrival__created_at', 'id')
    for item in items:
        arrival = item.arrival
        base = {
            'arrival_id': arrival.id,
            'product_name': item.product_name,
            'price': item.price,
            'cost_price': item.cost_price,
            'is_accessory': item.is_accessory,
            'is_service': item.is_service,
            'supplier_id': arrival.supplier_id,
            'supplier_name': arrival.supplier_name,
            'barcode': item.barcode,
        }
        name_match = not term or term in item.product_name.lower() or (item.barcode and term in item.barcode.lower())

        if item.has_serials:
            for serial in item.serial_numbers:
                if (arrival.id, serial) in sold_serials:
                    continue
                if name_match or serial.lower() == term:
                    products.append({**base, 'serial_number': serial, 'quantity': 1})
        else:
            key = (arrival.id, item.product_name, item.is_accessory, item.is_service)
            remaining = item.quantity - sold_counts.get(key, 0)
            if remaining <= 0 or not name_match:
                continue
            products.append({**base, 'serial_number': None, 'quantity': remaining})
    return products
