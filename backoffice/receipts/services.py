"""
Sale rules: receipt lines must match stock from arrivals, receipts are
numbered sequentially, and every payment part is posted to the ledger.
"""
import logging
from collections import defaultdict
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from backoffice.arrivals.models import Arrival
from backoffice.core.events import publish_event, RECEIPT_CREATED, RECEIPT_CANCELLED
from backoffice.core.exceptions import BackofficeError, ConflictError
from backoffice.payments.models import Payment
from backoffice.payments.services import post_payment, ledger_type_for_method, CATEGORY_SALE
from .models import Receipt, ReceiptItem, ReceiptPayment

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = Decimal('0.01')
NUMBER_WIDTH = 6
NUMBER_ATTEMPTS = 5


def next_receipt_number():
    """``prefix + (last number + 1)``, zero-padded"""
    prefix = settings.BACKOFFICE_RECEIPT_PREFIX
    last = 0
    for number in Receipt.objects.filter(receipt_number__startswith=prefix).values_list('receipt_number', flat=True):
        suffix = number[len(prefix):]
        if suffix.isdigit():
            last = max(last, int(suffix))
    return f"{prefix}{str(last + 1).zfill(NUMBER_WIDTH)}"


def find_arrival_line(arrival, item):
    for line in arrival.items.all():
        if line.product_name != item['product_name']:
            continue
        if item['serial_number']:
            if item['serial_number'] in (line.serial_numbers or []):
                return line
        elif (
            not line.has_serials
            and line.is_accessory == item['is_accessory']
            and line.is_service == item['is_service']
        ):
            return line
    return None


def validate_sale_items(items, exclude_receipt=None):
    """
    Check every line against the arrival it claims to come from.

    All problems are collected and raised together. Runs inside a
    transaction: the arrivals stay locked until it commits, so two sales
    cannot take the same unit.
    """
    errors = []
    arrival_ids = {item['arrival_id'] for item in items}
    locked = Arrival.objects.select_for_update().filter(id__in=arrival_ids).order_by('id').prefetch_related('items')
    arrivals = {a.id: a for a in locked}

    live_lines = ReceiptItem.objects.filter(arrival_id__in=arrival_ids).exclude(receipt__status='cancelled')
    if exclude_receipt is not None:
        live_lines = live_lines.exclude(receipt=exclude_receipt)
    sold_serials = set()
    sold_counts = defaultdict(int)
    for line in live_lines.values('arrival_id', 'product_name', 'serial_number', 'quantity', 'is_accessory', 'is_service'):
        if line['serial_number']:
            sold_serials.add((line['arrival_id'], line['serial_number']))
        else:
            sold_counts[(line['arrival_id'], line['product_name'], line['is_accessory'], line['is_service'])] += line['quantity']

    in_this_receipt = set()
    for position, item in enumerate(items, start=1):
        label = f'#{position} "{item["product_name"]}"'
        arrival = arrivals.get(item['arrival_id'])
        if arrival is None:
            errors.append(f"{label}: arrival {item['arrival_id']} not found")
            continue

        line = find_arrival_line(arrival, item)
        if line is None:
            if item['serial_number']:
                errors.append(f"{label}: serial number {item['serial_number']} is not in arrival {arrival.id}")
            else:
                errors.append(f"{label}: no matching product in arrival {arrival.id}")
            continue

        if abs(line.price - item['price']) > PRICE_TOLERANCE:
            errors.append(f"{label}: price {item['price']} does not match the arrival price {line.price}")
        if abs(line.cost_price - item['cost_price']) > PRICE_TOLERANCE:
            errors.append(f"{label}: cost price {item['cost_price']} does not match the arrival cost price {line.cost_price}")
        if item.get('supplier_id') and item['supplier_id'] != arrival.supplier_id:
            errors.append(f"{label}: supplier does not match the arrival supplier ({arrival.supplier_name or 'none'})")

        if item['serial_number']:
            key = (arrival.id, item['serial_number'])
            if key in sold_serials:
                errors.append(f"{label}: serial number {item['serial_number']} is already sold")
            elif key in in_this_receipt:
                errors.append(f"{label}: serial number {item['serial_number']} appears twice in this receipt")
            in_this_receipt.add(key)
        else:
            key = (arrival.id, line.product_name, line.is_accessory, line.is_service)
            available = line.quantity - sold_counts[key]
            if item['quantity'] > available:
                errors.append(f"{label}: only {max(available, 0)} left in stock, requested {item['quantity']}")
            sold_counts[key] += item['quantity']

    if errors:
        raise BackofficeError('Receipt items do not match the stock', details=errors)
    return arrivals


def compute_discount(subtotal, data):
    if data.get('discount') is not None:
        return data['discount']
    value = data.get('discount_value') or Decimal('0.00')
    if data.get('discount_type') == 'percent':
        return (subtotal * value / Decimal('100')).quantize(Decimal('0.01'))
    if data.get('discount_type') == 'fixed':
        return value
    return Decimal('0.00')


def default_payment_parts(data, total):
    method = data['payment_method']
    if method == 'mixed':
        raise BackofficeError('Mixed payments need the list of payment parts')
    return [{'method': method, 'amount': total, 'sber_recipient': '', 'in_cash_register': None,
             'cash_register_date': None}]


def ledger_register_flag(receipt, part):
    if receipt.is_debt and not receipt.debt_paid:
        return 'debt'
    if part.method == 'cash' and part.in_cash_register:
        return 'yes'
    return 'no'


def post_receipt_payments(receipt, user=None):
    """One income ledger entry per payment part"""
    is_open_debt = receipt.is_debt and not receipt.debt_paid
    for part in receipt.payments.all():
        if part.amount <= 0:
            continue
        post_payment(
            user=user,
            type=ledger_type_for_method(part.method),
            amount=part.amount,
            api_type='income',
            payment_method=part.method,
            category=CATEGORY_SALE,
            description=f"Receipt {receipt.receipt_number}",
            date=receipt.date,
            in_cash_register=ledger_register_flag(receipt, part),
            cash_register_date=part.cash_register_date,
            status='debt' if is_open_debt else 'active',
            notes=f"Sber recipient: {part.sber_recipient}" if part.sber_recipient else '',
            receipt=receipt,
        )


def check_payment_parts(parts, total):
    """Payment parts must add up to the receipt total; Sber transfers need a recipient"""
    errors = []
    paid = sum((part['amount'] for part in parts), Decimal('0.00'))
    if abs(paid - total) > PRICE_TOLERANCE:
        errors.append(f"payment parts add up to {paid}, the receipt total is {total}")
    for position, part in enumerate(parts, start=1):
        if part['method'] == 'sber_transfer' and not (part.get('sber_recipient') or '').strip():
            errors.append(f"payment #{position}: a Sber transfer needs a recipient")
    if errors:
        raise BackofficeError('Receipt payments do not match the total', details=errors)


def create_numbered_receipt(**fields):
    """Insert the receipt under the next free number, retrying when a concurrent sale took it"""
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        number = next_receipt_number()
        try:
            with transaction.atomic():
                return Receipt.objects.create(receipt_number=number, **fields)
        except IntegrityError:
            logger.warning(f"Receipt number {number} already taken (attempt {attempt})")
    raise ConflictError('Could not allocate a receipt number, please retry')


def create_receipt(data, user=None):
    items = data['items']
    date = data.get('date') or timezone.now()

    with transaction.atomic():
        # Stock is checked under the arrival row locks
        arrivals = validate_sale_items(items)

        lines = []
        subtotal = Decimal('0.00')
        for item in items:
            arrival = arrivals[item['arrival_id']]
            total = item.get('total')
            if total is None:
                total = item['price'] * item['quantity']
            subtotal += total
            lines.append((arrival, item, total))

        discount = compute_discount(subtotal, data)
        total = data.get('total')
        if total is None:
            total = subtotal - discount + data['delivery_cost']

        parts = data.get('payments') or default_payment_parts(data, total)
        check_payment_parts(parts, total)

        receipt = create_numbered_receipt(
            date=date,
            customer_name=data['customer_name'],
            customer_phone=data['customer_phone'],
            customer_email=data['customer_email'],
            subtotal=subtotal,
            discount=discount,
            discount_type=data['discount_type'],
            discount_value=data['discount_value'],
            tax=data['tax'],
            total=total,
            payment_method=data['payment_method'],
            delivery_method=data['delivery_method'],
            delivery_cost=data['delivery_cost'],
            notes=data['notes'],
            is_debt=data['is_debt'],
            created_by=user,
        )

        ReceiptItem.objects.bulk_create([
            ReceiptItem(
                receipt=receipt,
                arrival=arrival,
                product_name=item['product_name'],
                serial_number=item['serial_number'],
                quantity=item['quantity'],
                price=item['price'],
                cost_price=item['cost_price'],
                total=line_total,
                is_accessory=item['is_accessory'],
                is_service=item['is_service'],
                supplier_id=arrival.supplier_id,
                supplier_name=item['supplier_name'] or arrival.supplier_name,
            )
            for arrival, item, line_total in lines
        ])

        for part in parts:
            is_cash = part['method'] == 'cash'
            in_register = part.get('in_cash_register')
            if in_register is None:
                in_register = is_cash and not receipt.is_debt
            ReceiptPayment.objects.create(
                receipt=receipt,
                method=part['method'],
                amount=part['amount'],
                sber_recipient=part.get('sber_recipient') or '',
                in_cash_register=in_register,
                cash_register_date=(part.get('cash_register_date') or date) if in_register else None,
            )

        post_receipt_payments(receipt, user=user)

    logger.info(f"Receipt {receipt.receipt_number} created: total {receipt.total}, {len(lines)} lines")
    publish_event(RECEIPT_CREATED, {
        'receipt_id': receipt.id,
        'receipt_number': receipt.receipt_number,
        'total': str(receipt.total),
        'items': [
            {'arrival_id': arrival.id, 'product_name': item['product_name'],
             'serial_number': item['serial_number'], 'quantity': item['quantity']}
            for arrival, item, _ in lines
        ],
    })
    return receipt


def release_receipt(receipt, deleted=False):
    publish_event(RECEIPT_CANCELLED, {
        'receipt_id': receipt.id,
        'receipt_number': receipt.receipt_number,
        'deleted': deleted,
        'items': [
            {'arrival_id': item.arrival_id, 'product_name': item.product_name,
             'serial_number': item.serial_number, 'quantity': item.quantity}
            for item in receipt.items.all()
        ],
    })


def update_receipt(receipt, validated_data):
    """Apply editable fields; cancelling drops the receipt's ledger entries"""
    previous_status = receipt.status
    new_status = validated_data.get('status', previous_status)
    if previous_status == 'cancelled' and new_status != 'cancelled':
        raise BackofficeError('A cancelled receipt cannot be reopened; create a new receipt instead')

    with transaction.atomic():
        for attr, value in validated_data.items():
            setattr(receipt, attr, value)
        receipt.save()
        cancelled_now = new_status == 'cancelled' and previous_status != 'cancelled'
        if cancelled_now:
            deleted, _ = Payment.objects.filter(receipt=receipt).delete()
            logger.info(f"Receipt {receipt.receipt_number} cancelled, {deleted} ledger entries removed")

    if cancelled_now:
        release_receipt(receipt)
    return receipt


def pay_receipt_debt(receipt):
    """The customer settled a receipt sold on credit"""
    if receipt.status == 'cancelled':
        raise BackofficeError(f'Receipt {receipt.receipt_number} is cancelled')
    if not receipt.is_debt:
        raise BackofficeError(f'Receipt {receipt.receipt_number} is not a debt receipt')
    if receipt.debt_paid:
        raise BackofficeError(f'Receipt {receipt.receipt_number} debt is already paid')

    now = timezone.now()
    with transaction.atomic():
        receipt.debt_paid = True
        receipt.save(update_fields=['debt_paid', 'updated_at'])
        receipt.payments.filter(method='cash').update(in_cash_register=True, cash_register_date=now)
        Payment.objects.filter(receipt=receipt, type='cash').update(
            status='active', in_cash_register='yes', cash_register_date=now
        )
        Payment.objects.filter(receipt=receipt).exclude(type='cash').update(status='active', in_cash_register='no')

    logger.info(f"Debt of receipt {receipt.receipt_number} paid")
    return receipt


def incassate_receipts(receipt_ids):
    """Take the cash parts of the given receipts out of the register"""
    modified = ReceiptPayment.objects.filter(
        receipt_id__in=receipt_ids, method='cash', in_cash_register=True
    ).update(in_cash_register=False, cash_register_date=None)
    logger.info(f"Incassated cash parts of {len(receipt_ids)} receipts: {modified} parts")
    return modified


def receipt_stats(date_from=None, date_to=None):
    queryset = Receipt.objects.filter(status='completed')
    if date_from:
        queryset = queryset.filter(date__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(date__date__lte=date_to)
    totals = queryset.aggregate(total_sales=Sum('total'), total_receipts=Count('id'))
    total_sales = totals['total_sales'] or Decimal('0.00')
    count = totals['total_receipts']
    average = (total_sales / count).quantize(Decimal('0.01')) if count else Decimal('0.00')
    return {
        'total_sales': total_sales,
        'total_receipts': count,
        'average_check': average,
    }
