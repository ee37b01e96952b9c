import logging

from celery import shared_task
from django.conf import settings

from .models import StockItem
from .serializers import StockItemSerializer
from .services.broadcast import broadcast_event

logger = logging.getLogger(__name__)


@shared_task
def notify_low_stock(stock_item_id):
    """
    Warn connected clients that a stock item has reached the low stock threshold.

    The level is re-read, so a return that lands before the task runs
    suppresses the notification.
    """
    try:
        stock_item = StockItem.objects.get(id=stock_item_id)
    except StockItem.DoesNotExist:
        logger.error(f"StockItem with id {stock_item_id} does not exist.")
        return False

    if not stock_item.is_low_stock:
        logger.info(f"Stock {stock_item.batch_number} back above threshold; no notification sent.")
        return False

    logger.warning(
        f"Low stock: {stock_item.product_name} ({stock_item.batch_number}) has "
        f"{stock_item.current_quantity} left (threshold {settings.LOW_STOCK_THRESHOLD})"
    )
    broadcast_event('stock.low', stock_item=StockItemSerializer(stock_item).data)
    return True
