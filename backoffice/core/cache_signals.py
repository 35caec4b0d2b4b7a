"""
Cache invalidation signals
Report caches are dropped whenever receipts, ledger payments or debts change
"""
import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .cache_utils import DASHBOARD_PREFIX, invalidate_cache_pattern, invalidate_reports_cache

logger = logging.getLogger(__name__)


@receiver(post_save, sender='receipts.Receipt')
@receiver(post_delete, sender='receipts.Receipt')
@receiver(post_save, sender='receipts.ReceiptItem')
@receiver(post_delete, sender='receipts.ReceiptItem')
def invalidate_on_receipt_change(sender, instance, **kwargs):
    logger.debug(f"Receipt data changed ({sender.__name__} {instance.pk}), invalidating report cache")
    invalidate_reports_cache()


# Dashboard also shows debts, cash and order counts
@receiver(post_save, sender='payments.Payment')
@receiver(post_delete, sender='payments.Payment')
@receiver(post_save, sender='debts.Debt')
@receiver(post_delete, sender='debts.Debt')
@receiver(post_save, sender='parties.ClientDebt')
@receiver(post_delete, sender='parties.ClientDebt')
@receiver(post_save, sender='orders.Order')
@receiver(post_delete, sender='orders.Order')
def invalidate_on_ledger_change(sender, instance, **kwargs):
    invalidate_cache_pattern(DASHBOARD_PREFIX)
