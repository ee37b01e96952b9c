"""
Stock Issuance Service

Moves stock out of inventory and into customer orders, and back again:
1. Issue stock to an order (creates an issuance record, decrements stock)
2. Return an issuance (increments stock, marks the record returned)
3. Mark an issuance damaged (no stock change)

Business Rules:
- Stock cannot be issued to cancelled, delivered or installed orders
- Issued quantity can never exceed the quantity on hand
- Issuing to a pending order moves it to processing
- An issuance can only be returned once and marked damaged once
- Every mutation happens in one database transaction; nothing is
  broadcast unless it commits
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from inventory.models import IssuanceRecord, Order, StockItem
from inventory.serializers import IssuanceRecordSerializer, OrderSerializer
from inventory.services import stock_ledger
from inventory.services.broadcast import broadcast_on_commit
from inventory.services.numbering_service import create_with_daily_number
from utils.constants import ISSUANCE_NUMBER_PREFIX
from utils.exceptions import (
    AlreadyDamaged,
    AlreadyReturned,
    InsufficientStock,
    InvalidOrderState,
    IssuanceNotFound,
    OrderNotFound,
    StockItemNotFound,
)

logger = logging.getLogger(__name__)


class IssuanceService:
    """Service for issuing, returning and writing off stock against orders."""

    @staticmethod
    def issue_stock_to_order(
        order_id: int,
        stock_item_id: int,
        quantity,
        issued_by: str,
        remarks: Optional[str] = None
    ) -> Dict:
        """
        Issue ``quantity`` units of a stock item to an order.

        Preconditions are checked in this order and the first failure wins:
        order exists, order accepts issuances, stock item exists, enough stock.

        Args:
            order_id: ID of the order receiving the stock
            stock_item_id: ID of the stock item being issued
            quantity: Units to issue (must be > 0)
            issued_by: Identifier of the staff member issuing
            remarks: Optional free-text remarks

        Returns:
            Dict with ``success``, the serialized ``issuance`` and the
            ``remaining_stock`` of the item

        Raises:
            ValidationError: If quantity is not a positive number
            OrderNotFound, InvalidOrderState, StockItemNotFound, InsufficientStock
        """
        try:
            quantity = Decimal(str(quantity))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError({'quantity': 'Quantity must be a number'})
        if not quantity.is_finite() or quantity <= 0:
            raise ValidationError({'quantity': 'Quantity must be greater than 0'})
        if quantity != quantity.quantize(stock_ledger.QUANTITY_STEP):
            raise ValidationError({'quantity': 'Quantity must have at most 2 decimal places'})

        with transaction.atomic():
            try:
                order = Order.objects.select_for_update().get(id=order_id)
            except Order.DoesNotExist:
                raise OrderNotFound()

            if order.status in Order.ISSUE_BLOCKED_STATUSES:
                logger.warning(f"Rejected issuance to order {order.invoice_number} with status {order.status}")
                raise InvalidOrderState(f"Cannot issue stock for order with status: {order.status}")

            try:
                stock_item = StockItem.objects.select_for_update().get(id=stock_item_id)
            except StockItem.DoesNotExist:
                raise StockItemNotFound()

            if quantity > stock_item.current_quantity:
                logger.warning(
                    f"Rejected issuance of {quantity} from {stock_item.batch_number} "
                    f"to order {order.invoice_number}: only {stock_item.current_quantity} available"
                )
                raise InsufficientStock(stock_item.current_quantity, quantity)

            issuance = create_with_daily_number(
                IssuanceRecord,
                'issuance_number',
                ISSUANCE_NUMBER_PREFIX,
                stock_item=stock_item,
                order=order,
                order_number=order.invoice_number,
                issued_to=order.customer_name,
                issued_quantity=quantity,
                issued_by=issued_by,
                remarks=remarks or '',
            )

            stock_item = stock_ledger.decrement(stock_item.id, quantity)

            if order.status == Order.Status.PENDING:
                order.status = Order.Status.PROCESSING
                order.save(update_fields=['status', 'updated_at'])
                broadcast_on_commit('order.updated', order=OrderSerializer(order).data)

            issuance_data = IssuanceRecordSerializer(issuance).data
            broadcast_on_commit('issuance.created', issuance=issuance_data)
            if stock_item.is_low_stock:
                IssuanceService._schedule_low_stock_notification(stock_item)

        logger.info(
            f"Issued {quantity} of {stock_item.batch_number} to order {order.invoice_number} "
            f"as {issuance.issuance_number}; {stock_item.current_quantity} remaining"
        )

        return {
            'success': True,
            'issuance': issuance_data,
            'remaining_stock': str(stock_item.current_quantity),
        }

    @staticmethod
    def return_stock(issuance_id: int, remarks: Optional[str] = None) -> Dict:
        """
        Return an issuance's stock to inventory.

        Raises:
            IssuanceNotFound: If the issuance does not exist
            AlreadyReturned: If it has already been returned
        """
        with transaction.atomic():
            try:
                issuance = IssuanceRecord.objects.select_for_update().get(id=issuance_id)
            except IssuanceRecord.DoesNotExist:
                raise IssuanceNotFound()

            if issuance.status == IssuanceRecord.Status.RETURNED:
                logger.warning(f"Rejected second return of {issuance.issuance_number}")
                raise AlreadyReturned()

            stock_ledger.increment(issuance.stock_item_id, issuance.issued_quantity)

            issuance.status = IssuanceRecord.Status.RETURNED
            issuance.return_date = timezone.now()
            issuance.append_remarks('Returned', remarks)
            issuance.save(update_fields=['status', 'return_date', 'remarks', 'updated_at'])

            issuance_data = IssuanceRecordSerializer(issuance).data
            broadcast_on_commit('issuance.updated', issuance=issuance_data)

        logger.info(f"Issuance {issuance.issuance_number} returned; {issuance.issued_quantity} back in stock")
        return {'success': True, 'issuance': issuance_data}

    @staticmethod
    def mark_issuance_damaged(issuance_id: int, remarks: Optional[str] = None) -> Dict:
        """
        Mark an issuance as damaged. Stock levels are not touched.

        Raises:
            IssuanceNotFound: If the issuance does not exist
            AlreadyDamaged: If it is already marked damaged
        """
        with transaction.atomic():
            try:
                issuance = IssuanceRecord.objects.select_for_update().get(id=issuance_id)
            except IssuanceRecord.DoesNotExist:
                raise IssuanceNotFound()

            if issuance.status == IssuanceRecord.Status.DAMAGED:
                logger.warning(f"Rejected second damage report for {issuance.issuance_number}")
                raise AlreadyDamaged()

            issuance.status = IssuanceRecord.Status.DAMAGED
            issuance.append_remarks('Damaged', remarks)
            issuance.save(update_fields=['status', 'remarks', 'updated_at'])

            issuance_data = IssuanceRecordSerializer(issuance).data
            broadcast_on_commit('issuance.updated', issuance=issuance_data)

        logger.info(f"Issuance {issuance.issuance_number} marked as damaged")
        return {'success': True, 'issuance': issuance_data}

    @staticmethod
    def list_issuances(order_id=None, stock_item_id=None, status=None):
        """Issuance records, newest first, optionally narrowed by order, stock item or status."""
        queryset = IssuanceRecord.objects.select_related('stock_item', 'order')
        if order_id is not None:
            queryset = queryset.filter(order_id=order_id)
        if stock_item_id is not None:
            queryset = queryset.filter(stock_item_id=stock_item_id)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-issued_at', '-id')

    @staticmethod
    def _schedule_low_stock_notification(stock_item: StockItem):
        from inventory.tasks import notify_low_stock

        stock_item_id = stock_item.id
        transaction.on_commit(lambda: notify_low_stock.delay(stock_item_id))
