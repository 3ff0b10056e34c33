"""
Cache invalidation signals
Report results are dropped whenever a model that feeds them changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_reports_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

REPORT_SOURCE_MODELS = {
    'Item',
    'Party',
    'Branch',
    'PurchaseOrder',
    'PurchaseOrderLineItem',
    'SalesOrder',
    'SalesOrderLineItem',
    'Discount',
    'Payment',
    'PaymentSplit',
    'Account',
    'AccountTransfer',
    'Expense',
    'ExpenseCategory',
    'OpeningBalance',
    'ImeiInventory',
    'Return',
    'ReturnLineItem',
    'StockTransfer',
    'StockTransferLineItem',
    'InventoryAdjustment',
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_reports_on_change(sender, instance, **kwargs):
    """Invalidate cached reports when a report source model changes"""
    if is_suspended():
        return
    if sender.__name__ not in REPORT_SOURCE_MODELS:
        return
    if not sender.__module__.startswith('erp.'):
        return
    try:
        invalidate_reports_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_reports_on_change signal: {e}")
