"""
Back-office notification feed.

Every state change other parts of the system react to (stock added or
removed, a debt paid, cash collected) is stored as an ``EventLog`` row and
broadcast through the ``backoffice_event`` signal. Clients poll
``/events/?after=<id>`` to replay notifications in order.
"""
import logging

from django.dispatch import Signal

from .models import EventLog

logger = logging.getLogger(__name__)

backoffice_event = Signal()

PRODUCT_ADDED = 'product_added'
PRODUCT_REMOVED = 'product_removed'
ARRIVAL_DELETED = 'arrival_deleted'
DEBT_PAID = 'debt_paid'
DEBT_DELETED = 'debt_deleted'
RECEIPT_CREATED = 'receipt_created'
RECEIPT_CANCELLED = 'receipt_cancelled'
PAYMENT_CREATED = 'payment_created'
INCASSATION = 'incassation'
CLIENT_DEBT_CREATED = 'client_debt_created'
CLIENT_DEBT_PAID = 'client_debt_paid'

EVENT_TYPES = (
    PRODUCT_ADDED, PRODUCT_REMOVED, ARRIVAL_DELETED, DEBT_PAID, DEBT_DELETED,
    RECEIPT_CREATED, RECEIPT_CANCELLED, PAYMENT_CREATED, INCASSATION,
    CLIENT_DEBT_CREATED, CLIENT_DEBT_PAID,
)


def publish_event(event_type, payload=None):
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {event_type}")
    event = EventLog.objects.create(event_type=event_type, payload=payload or {})
    logger.debug(f"Published event #{event.id} {event_type}")
    backoffice_event.send(sender=EventLog, event=event)
    return event


def publish_unit_events(event_type, items, arrival_id):
    """One event per serial number, or one per accessory/service line with its quantity"""
    for item in items:
        base = {
            'arrival_id': arrival_id,
            'product_name': item.product_name,
            'price': str(item.price),
            'cost_price': str(item.cost_price),
            'is_accessory': item.is_accessory,
            'is_service': item.is_service,
        }
        serials = item.serial_numbers or []
        if serials and not (item.is_accessory or item.is_service):
            for serial in serials:
                publish_event(event_type, {**base, 'serial_number': serial, 'quantity': 1})
        else:
            publish_event(event_type, {**base, 'barcode': item.barcode or '', 'quantity': item.quantity})
