"""
Order Management Service

Business logic for customer orders: creation with line items and invoice
numbering, edits, payments, status transitions and deletion.

Key Features:
- Invoice numbers allocated per day (INV-YYYYMMDD-NNNN)
- Totals computed from line items; balance due kept in step with payments
- Status changes validated against the order state machine
- Orders referenced by issuance records cannot be deleted

Usage:
    from inventory.services import OrderService

    order = OrderService.create_order(validated_data, created_by='jane')
    OrderService.transition(order, Order.Status.READY)
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction as db_transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from inventory.models import IssuanceRecord, Order, OrderLineItem, StockItem
from inventory.serializers import OrderSerializer
from inventory.services.broadcast import broadcast_on_commit
from inventory.services.numbering_service import create_with_daily_number
from utils.constants import INVOICE_NUMBER_PREFIX
from utils.exceptions import (
    HasIssuances,
    InvalidStatusTransitionError,
    OrderLocked,
    PaymentExceedsBalance,
    StockItemNotFound,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'customer_name', 'customer_phone', 'customer_address', 'order_type',
    'payment_method', 'amount_paid', 'delivery_required', 'delivery_address',
    'installation_required', 'notes',
)


class OrderService:
    """
    Service class for the order lifecycle.

    Every mutating method locks the order row, so concurrent edits and
    issuances against the same order are serialized.
    """

    @staticmethod
    def create_order(data: Dict, created_by: str = '') -> Order:
        """
        Create an order with its line items.

        Args:
            data: Validated order fields plus ``items``, a list of dicts with
                ``stock_item_id``, ``quantity`` and optional ``unit_price``
                (defaults to the stock item's price), ``discount``,
                ``cut_to_size``, ``width`` and ``height``
            created_by: Username of the staff member creating the order

        Returns:
            The new Order

        Raises:
            ValidationError: If there are no line items
            StockItemNotFound: If a line references a missing stock item
            PaymentExceedsBalance: If ``amount_paid`` exceeds the total
        """
        data = dict(data)
        items = data.pop('items', None) or []
        if not items:
            raise ValidationError({'items': 'At least one item is required'})

        with db_transaction.atomic():
            stock_ids = {item['stock_item_id'] for item in items}
            stock_items = StockItem.objects.in_bulk(stock_ids)

            lines = []
            for item in items:
                stock_item = stock_items.get(item['stock_item_id'])
                if stock_item is None:
                    raise StockItemNotFound(f"Stock item {item['stock_item_id']} not found.")

                unit_price = item.get('unit_price')
                lines.append(OrderLineItem(
                    stock_item=stock_item,
                    quantity=item['quantity'],
                    unit_price=stock_item.unit_price if unit_price is None else unit_price,
                    discount=item.get('discount') or Decimal('0'),
                    cut_to_size=item.get('cut_to_size', False),
                    width=item.get('width'),
                    height=item.get('height'),
                ))

            total = sum((line.line_total for line in lines), Decimal('0.00'))
            amount_paid = data.pop('amount_paid', None) or Decimal('0.00')
            if amount_paid > total:
                raise PaymentExceedsBalance(
                    f"Amount paid ({amount_paid}) cannot exceed order total ({total})."
                )

            order = create_with_daily_number(
                Order,
                'invoice_number',
                INVOICE_NUMBER_PREFIX,
                total_amount=total,
                amount_paid=amount_paid,
                created_by=created_by,
                **{key: value for key, value in data.items() if key in EDITABLE_FIELDS},
            )

            for line in lines:
                line.order = order
            OrderLineItem.objects.bulk_create(lines)

            broadcast_on_commit('order.updated', order=OrderSerializer(order).data)

        logger.info(f"Order {order.invoice_number} created for {order.customer_name} ({total})")
        return order

    @staticmethod
    def update_order(order: Order, changes: Dict) -> Order:
        """
        Apply edits to an open order.

        ``invoice_number`` and ``status`` are not editable here; unknown keys
        are ignored.

        Raises:
            OrderLocked: If the order is cancelled, delivered or installed
            PaymentExceedsBalance: If ``amount_paid`` would exceed the total
        """
        with db_transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)

            if order.is_locked:
                logger.warning(f"Attempted to edit locked order {order.invoice_number}")
                raise OrderLocked(
                    f"Order {order.invoice_number} is {order.status} and cannot be modified."
                )

            for field, value in changes.items():
                if field in EDITABLE_FIELDS:
                    setattr(order, field, value)

            if order.amount_paid > order.total_amount:
                raise PaymentExceedsBalance(
                    f"Amount paid ({order.amount_paid}) cannot exceed order total ({order.total_amount})."
                )

            order.save()
            broadcast_on_commit('order.updated', order=OrderSerializer(order).data)

        logger.info(f"Order {order.invoice_number} updated: {', '.join(sorted(changes))}")
        return order

    @staticmethod
    def record_payment(order: Order, amount: Decimal) -> Order:
        """
        Record a payment against an order.

        Raises:
            OrderLocked: If the order is cancelled
            ValidationError: If amount is not positive
            PaymentExceedsBalance: If amount exceeds the balance due
        """
        amount = Decimal(str(amount))
        if amount <= Decimal('0.00'):
            raise ValidationError({'amount': 'Amount must be greater than zero'})

        with db_transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)

            if order.status == Order.Status.CANCELLED:
                raise OrderLocked(f"Order {order.invoice_number} is cancelled and cannot take payments.")

            if amount > order.balance_due:
                logger.warning(
                    f"Payment of {amount} exceeds balance {order.balance_due} "
                    f"on order {order.invoice_number}"
                )
                raise PaymentExceedsBalance(
                    f"Payment exceeds balance due. Balance: {order.balance_due}, Payment: {amount}"
                )

            order.amount_paid += amount
            payment_note = (
                f"[{timezone.now().strftime('%Y-%m-%d %H:%M:%S')}] "
                f"Payment of {amount} received"
            )
            order.notes = f"{order.notes}\n{payment_note}" if order.notes else payment_note
            order.save()

            broadcast_on_commit('order.updated', order=OrderSerializer(order).data)

        logger.info(
            f"Payment of {amount} recorded on order {order.invoice_number}. "
            f"Balance due: {order.balance_due}"
        )
        return order

    @staticmethod
    def transition(order: Order, new_status: str, notes: Optional[str] = None) -> Order:
        """
        Move an order to ``new_status``.

        Raises:
            InvalidStatusTransitionError: If the state machine does not allow it
        """
        with db_transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)

            if not order.can_transition_to(new_status):
                logger.warning(
                    f"Invalid transition for {order.invoice_number}: "
                    f"{order.status} -> {new_status}"
                )
                raise InvalidStatusTransitionError(
                    f"Cannot transition from {order.get_status_display()} to "
                    f"{Order.Status(new_status).label}"
                )

            order.status = new_status
            if notes:
                status_note = f"[{timezone.now().strftime('%Y-%m-%d %H:%M:%S')}] {notes}"
                order.notes = f"{order.notes}\n{status_note}" if order.notes else status_note
            order.save()

            broadcast_on_commit('order.updated', order=OrderSerializer(order).data)

        logger.info(f"Order {order.invoice_number} moved to {order.status}")
        return order

    @staticmethod
    def cancel_order(order: Order, reason: str) -> Order:
        """
        Cancel an order. A reason is required for the audit trail.

        Stock already issued is not returned automatically; each issuance
        must be returned on its own.
        """
        if not reason or not reason.strip():
            raise ValidationError({'reason': 'Cancellation reason is required'})

        order = OrderService.transition(order, Order.Status.CANCELLED, notes=f"CANCELLED - {reason}")
        logger.warning(f"Order {order.invoice_number} CANCELLED - Reason: {reason}")
        return order

    @staticmethod
    def delete_order(order: Order) -> None:
        """
        Delete an order and its line items.

        Raises:
            HasIssuances: If any issuance record references the order
        """
        with db_transaction.atomic():
            if IssuanceRecord.objects.filter(order_id=order.pk).exists():
                logger.warning(f"Refused to delete order {order.invoice_number}: it has issuances")
                raise HasIssuances()

            invoice_number = order.invoice_number
            order.delete()

        logger.info(f"Order {invoice_number} deleted")

    @staticmethod
    def order_summary() -> Dict:
        """
        Dashboard figures for orders, computed from the rows on every call.

        Revenue and issued units cover the current calendar month (local time).
        """
        now = timezone.localtime()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        orders = Order.objects.all()
        counts = orders.aggregate(
            total_orders=Count('id'),
            pending_orders=Count('id', filter=Q(status__in=[Order.Status.PENDING, Order.Status.PROCESSING])),
            today_orders=Count('id', filter=Q(created_at__gte=today_start)),
            total_customers=Count('customer_phone', distinct=True),
        )

        monthly_revenue = orders.filter(
            created_at__gte=month_start
        ).exclude(
            status=Order.Status.CANCELLED
        ).aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00')

        outstanding_balance = orders.exclude(
            status=Order.Status.CANCELLED
        ).aggregate(total=Sum('balance_due'))['total'] or Decimal('0.00')

        issued_this_month = IssuanceRecord.objects.filter(
            issued_at__gte=month_start,
            status=IssuanceRecord.Status.ISSUED,
        ).aggregate(total=Sum('issued_quantity'))['total'] or Decimal('0')

        by_status = dict(orders.values_list('status').annotate(count=Count('id')).order_by())

        return {
            'total_orders': counts['total_orders'],
            'pending_orders': counts['pending_orders'],
            'today_orders': counts['today_orders'],
            'monthly_revenue': str(monthly_revenue),
            'outstanding_balance': str(outstanding_balance),
            'issued_this_month': str(issued_this_month),
            'total_customers': counts['total_customers'],
            'by_status': {value: by_status.get(value, 0) for value in Order.Status.values},
        }
