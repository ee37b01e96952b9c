"""
Stock Ledger

The only code that writes ``StockItem.current_quantity``. Both mutations lock
the stock row and must run inside the caller's ``transaction.atomic()``
block so the change commits or rolls back together with the issuance
record that caused it.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Sum, Value
from django.db.models.functions import Coalesce

from inventory.models import StockItem
from utils.exceptions import InsufficientStock, StockItemNotFound

logger = logging.getLogger(__name__)


QUANTITY_STEP = Decimal('0.01')


def _validate_amount(amount):
    amount = Decimal(str(amount))
    if not amount.is_finite() or amount <= 0:
        raise ValidationError({'quantity': 'Quantity must be greater than 0'})
    # Quantity columns hold two decimal places; anything finer would be rounded on save
    if amount != amount.quantize(QUANTITY_STEP):
        raise ValidationError({'quantity': 'Quantity must have at most 2 decimal places'})
    return amount


def _lock(stock_item_id):
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError('Stock ledger mutations must run inside transaction.atomic()')
    try:
        return StockItem.objects.select_for_update().get(id=stock_item_id)
    except StockItem.DoesNotExist:
        raise StockItemNotFound()


def decrement(stock_item_id, amount):
    """
    Remove ``amount`` units from stock.

    Raises:
        StockItemNotFound: If the item does not exist
        InsufficientStock: If ``amount`` exceeds the quantity on hand
    """
    amount = _validate_amount(amount)
    item = _lock(stock_item_id)

    if amount > item.current_quantity:
        logger.warning(
            f"Insufficient stock for {item.batch_number}: "
            f"available {item.current_quantity}, requested {amount}"
        )
        raise InsufficientStock(item.current_quantity, amount)

    item.current_quantity -= amount
    item.save(update_fields=['current_quantity', 'updated_at'])
    logger.info(f"Stock {item.batch_number} decremented by {amount} to {item.current_quantity}")
    return item


def increment(stock_item_id, amount):
    """
    Put ``amount`` units back into stock.

    Not capped by ``original_quantity``; exceeding it is logged so it can be
    reconciled by hand.
    """
    amount = _validate_amount(amount)
    item = _lock(stock_item_id)

    item.current_quantity += amount
    item.save(update_fields=['current_quantity', 'updated_at'])

    if item.current_quantity > item.original_quantity:
        logger.warning(
            f"Stock {item.batch_number} now {item.current_quantity}, "
            f"above original quantity {item.original_quantity}"
        )
    else:
        logger.info(f"Stock {item.batch_number} incremented by {amount} to {item.current_quantity}")
    return item


def low_stock_items(threshold=None):
    """Items at or below ``threshold`` (default ``LOW_STOCK_THRESHOLD``), lowest first."""
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return StockItem.objects.filter(current_quantity__lte=threshold).order_by('current_quantity', 'product_name')


def stock_summary():
    """
    Aggregate figures across all stock items.

    Computed from the rows on every call.
    """
    money = DecimalField(max_digits=20, decimal_places=2)
    zero = Value(Decimal('0'), output_field=money)

    totals = StockItem.objects.aggregate(
        item_count=Count('id'),
        total_units=Coalesce(Sum('current_quantity'), zero, output_field=money),
        total_value=Coalesce(
            Sum(ExpressionWrapper(F('current_quantity') * F('unit_price'), output_field=money)),
            zero,
            output_field=money,
        ),
        supplier_count=Count('supplier', distinct=True),
    )

    # Area needs both dimensions, so it is summed in Python
    total_area = sum(
        (item.total_area for item in StockItem.objects.exclude(width=None).exclude(height=None)),
        Decimal('0.00'),
    )

    return {
        'item_count': totals['item_count'],
        'total_units': str(totals['total_units']),
        'total_value': str(totals['total_value']),
        'total_area': str(total_area),
        'low_stock_count': low_stock_items().count(),
        'low_stock_threshold': settings.LOW_STOCK_THRESHOLD,
        'supplier_count': totals['supplier_count'],
    }
