"""
Unit tests for inventory models.

Tests derived figures and model-level rules:
- StockItem low stock, value, area and creation bounds
- Order balance recomputation and state machine
- OrderLineItem discount arithmetic
- IssuanceRecord immutability and remarks
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from inventory.models import IssuanceRecord, Order, OrderLineItem, StockItem
from inventory.tests.helpers import make_order, make_stock_item
from utils.constants import STOCK_STATUS_IN, STOCK_STATUS_LOW, STOCK_STATUS_OUT


class StockItemModelTest(TestCase):

    def test_low_stock_threshold_is_inclusive(self):
        """Items at exactly the threshold count as low stock."""
        self.assertTrue(make_stock_item(quantity='10').is_low_stock)
        self.assertFalse(make_stock_item(quantity='11').is_low_stock)

    def test_stock_status(self):
        self.assertEqual(make_stock_item(quantity='0').stock_status, STOCK_STATUS_OUT)
        self.assertEqual(make_stock_item(quantity='3').stock_status, STOCK_STATUS_LOW)
        self.assertEqual(make_stock_item(quantity='50').stock_status, STOCK_STATUS_IN)

    def test_total_value_and_area(self):
        """Area is width/100 x height/100 x quantity in square metres."""
        item = make_stock_item(quantity='4', unit_price=Decimal('250.00'))

        self.assertEqual(item.total_value, Decimal('1000.00'))
        # 2.00m x 1.00m x 4
        self.assertEqual(item.total_area, Decimal('8.00'))

    def test_total_area_without_dimensions(self):
        item = make_stock_item(width=None, height=None)
        self.assertEqual(item.total_area, Decimal('0.00'))

    def test_remaining_percentage(self):
        item = make_stock_item(quantity='20')
        item.current_quantity = Decimal('5')
        self.assertEqual(item.remaining_percentage, Decimal('25.00'))

    def test_new_item_cannot_exceed_original_quantity(self):
        item = StockItem(
            product_name='Laminated',
            stock_type='laminated',
            batch_number='LAM-1',
            current_quantity=Decimal('12'),
            original_quantity=Decimal('10'),
            unit_price=Decimal('100'),
            supplier='Acme',
        )
        with self.assertRaises(ValidationError) as ctx:
            item.full_clean()
        self.assertIn('current_quantity', ctx.exception.message_dict)

    def test_negative_quantity_rejected_by_database(self):
        item = make_stock_item(quantity='2')
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                StockItem.objects.filter(pk=item.pk).update(current_quantity=Decimal('-1'))


class OrderModelTest(TestCase):

    def test_balance_due_recomputed_on_save(self):
        order = make_order(total_amount=Decimal('1000.00'))
        self.assertEqual(order.balance_due, Decimal('1000.00'))

        order.amount_paid = Decimal('400.00')
        order.save(update_fields=['amount_paid'])
        order.refresh_from_db()

        self.assertEqual(order.balance_due, Decimal('600.00'))

    def test_valid_transitions(self):
        order = make_order()
        self.assertTrue(order.can_transition_to(Order.Status.PROCESSING))
        self.assertTrue(order.can_transition_to(Order.Status.CANCELLED))
        self.assertFalse(order.can_transition_to(Order.Status.DELIVERED))

    def test_installed_only_when_installation_required(self):
        plain = make_order(status=Order.Status.DELIVERED)
        fitted = make_order(status=Order.Status.DELIVERED, installation_required=True)

        self.assertFalse(plain.can_transition_to(Order.Status.INSTALLED))
        self.assertTrue(fitted.can_transition_to(Order.Status.INSTALLED))

    def test_terminal_states_are_locked(self):
        for status in (Order.Status.CANCELLED, Order.Status.DELIVERED, Order.Status.INSTALLED):
            self.assertTrue(make_order(status=status).is_locked)
        self.assertFalse(make_order(status=Order.Status.READY).is_locked)

    def test_cancelled_has_no_transitions(self):
        order = make_order(status=Order.Status.CANCELLED)
        for status in Order.Status.values:
            self.assertFalse(order.can_transition_to(status))


class OrderLineItemModelTest(TestCase):

    def test_line_total_applies_percentage_discount(self):
        """3 x 1500 with 10% off is 4050."""
        line = OrderLineItem.objects.create(
            order=make_order(),
            stock_item=make_stock_item(),
            quantity=Decimal('3'),
            unit_price=Decimal('1500.00'),
            discount=Decimal('10'),
        )
        self.assertEqual(line.line_total, Decimal('4050.00'))


class IssuanceRecordModelTest(TestCase):

    def setUp(self):
        self.issuance = IssuanceRecord.objects.create(
            issuance_number='ISS-20250101-0001',
            stock_item=make_stock_item(),
            order=make_order(),
            order_number='INV-20250101-0001',
            issued_to='Jane Wanjiku',
            issued_quantity=Decimal('2'),
            issued_by='staffer',
        )

    def test_issued_quantity_is_immutable(self):
        issuance = IssuanceRecord.objects.get(pk=self.issuance.pk)
        issuance.issued_quantity = Decimal('3')

        with self.assertRaises(ValidationError):
            issuance.save()

    def test_other_fields_can_change(self):
        issuance = IssuanceRecord.objects.get(pk=self.issuance.pk)
        issuance.status = IssuanceRecord.Status.DAMAGED
        issuance.save()

        issuance.refresh_from_db()
        self.assertEqual(issuance.status, IssuanceRecord.Status.DAMAGED)

    def test_delete_is_refused(self):
        with self.assertRaises(ValidationError):
            self.issuance.delete()
        self.assertTrue(IssuanceRecord.objects.filter(pk=self.issuance.pk).exists())

    def test_append_remarks(self):
        self.issuance.append_remarks('Returned', 'wrong size')
        self.assertEqual(self.issuance.remarks, 'Returned: wrong size')

        self.issuance.append_remarks('Damaged', 'cracked')
        self.assertEqual(self.issuance.remarks, 'Returned: wrong size | Damaged: cracked')

    def test_append_empty_remarks_is_noop(self):
        self.issuance.remarks = 'original'
        self.issuance.append_remarks('Returned', None)
        self.assertEqual(self.issuance.remarks, 'original')
