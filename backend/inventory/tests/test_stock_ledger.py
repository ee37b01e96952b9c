"""
Unit tests for the stock ledger: locked decrement/increment and the
read-side summaries.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase, override_settings

from inventory.services import stock_ledger
from inventory.tests.helpers import make_stock_item
from utils.exceptions import InsufficientStock, StockItemNotFound


class StockLedgerMutationTest(TestCase):

    def setUp(self):
        self.item = make_stock_item(quantity='5')

    def test_decrement(self):
        with transaction.atomic():
            stock_ledger.decrement(self.item.id, Decimal('3'))

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('2'))

    def test_decrement_to_zero(self):
        with transaction.atomic():
            stock_ledger.decrement(self.item.id, Decimal('5'))

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('0'))

    def test_decrement_beyond_stock(self):
        with self.assertRaises(InsufficientStock) as ctx:
            with transaction.atomic():
                stock_ledger.decrement(self.item.id, Decimal('6'))

        self.assertEqual(str(ctx.exception.detail), 'Insufficient stock. Available: 5, Requested: 6')
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('5'))

    def test_amount_must_be_positive(self):
        for amount in (Decimal('0'), Decimal('-1')):
            with self.assertRaises(ValidationError):
                with transaction.atomic():
                    stock_ledger.decrement(self.item.id, amount)

    def test_amount_finer_than_two_places_rejected(self):
        for amount in (Decimal('0.004'), Decimal('1.005')):
            with self.assertRaises(ValidationError):
                with transaction.atomic():
                    stock_ledger.increment(self.item.id, amount)

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('5'))

    def test_unknown_item(self):
        with self.assertRaises(StockItemNotFound):
            with transaction.atomic():
                stock_ledger.decrement(999999, Decimal('1'))

    def test_increment_is_not_capped(self):
        """Returns may push stock past the original quantity."""
        with transaction.atomic():
            stock_ledger.increment(self.item.id, Decimal('2'))

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('7'))
        self.assertEqual(self.item.original_quantity, Decimal('5'))

    def test_increment_above_original_is_logged(self):
        with self.assertLogs('inventory.services.stock_ledger', level='WARNING') as logs:
            with transaction.atomic():
                stock_ledger.increment(self.item.id, Decimal('1'))

        self.assertIn('above original quantity', logs.output[0])

    def test_fractional_quantities(self):
        """Glass is issued by area, so quantities may be fractional."""
        with transaction.atomic():
            stock_ledger.decrement(self.item.id, Decimal('1.25'))

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('3.75'))


@override_settings(LOW_STOCK_THRESHOLD=10)
class StockLedgerReadTest(TestCase):

    def setUp(self):
        self.low = make_stock_item(quantity='4', supplier='Acme', unit_price=Decimal('100.00'))
        self.edge = make_stock_item(quantity='10', supplier='Acme', unit_price=Decimal('10.00'))
        self.plenty = make_stock_item(
            quantity='50', supplier='Kioo Supplies', unit_price=Decimal('2.00'), width=None, height=None
        )

    def test_low_stock_items(self):
        self.assertEqual(list(stock_ledger.low_stock_items()), [self.low, self.edge])

    def test_low_stock_items_custom_threshold(self):
        self.assertEqual(list(stock_ledger.low_stock_items(5)), [self.low])

    def test_stock_summary(self):
        summary = stock_ledger.stock_summary()

        self.assertEqual(summary['item_count'], 3)
        self.assertEqual(Decimal(summary['total_units']), Decimal('64'))
        # 4x100 + 10x10 + 50x2
        self.assertEqual(Decimal(summary['total_value']), Decimal('600'))
        # 2m x 1m per unit, 14 units with dimensions
        self.assertEqual(Decimal(summary['total_area']), Decimal('28'))
        self.assertEqual(summary['low_stock_count'], 2)
        self.assertEqual(summary['supplier_count'], 2)

    def test_summary_reflects_current_rows(self):
        """Figures are computed from the rows, not cached."""
        with transaction.atomic():
            stock_ledger.decrement(self.plenty.id, Decimal('45'))

        summary = stock_ledger.stock_summary()
        self.assertEqual(summary['low_stock_count'], 3)
        self.assertEqual(Decimal(summary['total_units']), Decimal('19'))
