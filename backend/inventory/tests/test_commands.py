"""
Tests for the import_stock and create_staff_user management commands.
"""

import os
import tempfile
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from inventory.models import StaffProfile, StockItem
from inventory.services import IssuanceService
from inventory.tests.helpers import make_order, make_stock_item

HEADER = 'batch_number,product_name,stock_type,quantity,unit_price,supplier,thickness,color\n'


class ImportStockCommandTest(TestCase):

    def write_csv(self, body, header=HEADER):
        handle = tempfile.NamedTemporaryFile('w', suffix='.csv', delete=False, encoding='utf-8')
        handle.write(header + body)
        handle.close()
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def run_import(self, path, *args):
        out = StringIO()
        call_command('import_stock', path, *args, stdout=out)
        return out.getvalue()

    def test_creates_items(self):
        path = self.write_csv(
            'B-001,Clear Float,float,40,1200.00,Nairobi Glass Ltd,6,clear\n'
            'B-002,Bronze Tint,tinted,12.5,1850.50,Mombasa Glass,,\n'
        )
        output = self.run_import(path)

        self.assertIn('Created: 2', output)
        item = StockItem.objects.get(batch_number='B-002')
        self.assertEqual(item.current_quantity, Decimal('12.5'))
        self.assertEqual(item.original_quantity, Decimal('12.5'))
        self.assertEqual(item.unit_price, Decimal('1850.50'))
        self.assertIsNone(item.thickness)

    def test_existing_batch_keeps_quantity(self):
        make_stock_item(quantity='7', batch_number='B-001', unit_price=Decimal('1000.00'))
        path = self.write_csv('B-001,Clear Float,float,40,1200.00,Nairobi Glass Ltd,6,clear\n')

        output = self.run_import(path)

        self.assertIn('Updated: 1', output)
        item = StockItem.objects.get(batch_number='B-001')
        self.assertEqual(item.current_quantity, Decimal('7'))
        self.assertEqual(item.unit_price, Decimal('1200.00'))

    def test_bad_rows_are_skipped(self):
        path = self.write_csv(
            'B-001,Clear Float,float,lots,1200.00,Nairobi Glass Ltd,,\n'
            'B-002,Bronze Tint,tinted,-3,1850.50,Mombasa Glass,,\n'
            'B-003,Grey Tint,tinted,5,900,Mombasa Glass,,\n'
        )
        output = self.run_import(path)

        self.assertIn('Skipped: 2', output)
        self.assertEqual(list(StockItem.objects.values_list('batch_number', flat=True)), ['B-003'])

    def test_clear_keeps_referenced_items(self):
        issued = make_stock_item(quantity='5')
        unused = make_stock_item(quantity='5')
        IssuanceService.issue_stock_to_order(make_order().id, issued.id, 1, issued_by='wanjiru')

        path = self.write_csv('B-900,Clear Float,float,10,1200.00,Nairobi Glass Ltd,,\n')
        self.run_import(path, '--clear')

        self.assertTrue(StockItem.objects.filter(pk=issued.pk).exists())
        self.assertFalse(StockItem.objects.filter(pk=unused.pk).exists())
        self.assertTrue(StockItem.objects.filter(batch_number='B-900').exists())

    def test_missing_columns(self):
        path = self.write_csv('B-001,Clear Float\n', header='batch_number,product_name\n')

        with self.assertRaisesMessage(CommandError, 'Missing required columns'):
            self.run_import(path)

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            self.run_import('/nonexistent/stock.csv')


class CreateStaffUserCommandTest(TestCase):

    def test_creates_approved_user(self):
        out = StringIO()
        call_command('create_staff_user', 'otieno', '--password', 'pa55word', '--role', 'pharmacy', stdout=out)

        user = get_user_model().objects.get(username='otieno')
        self.assertTrue(user.check_password('pa55word'))
        self.assertEqual(user.staff_profile.role, StaffProfile.Role.PHARMACY)
        self.assertTrue(user.staff_profile.approved)
        self.assertFalse(user.is_staff)
        self.assertIn('approved', out.getvalue())

    def test_unapproved_admin(self):
        call_command(
            'create_staff_user', 'root', '--password', 'pa55word', '--role', 'admin', '--unapproved',
            stdout=StringIO()
        )

        user = get_user_model().objects.get(username='root')
        self.assertTrue(user.is_staff)
        self.assertFalse(user.staff_profile.approved)

    def test_existing_username(self):
        call_command('create_staff_user', 'otieno', '--password', 'x', stdout=StringIO())

        with self.assertRaisesMessage(CommandError, 'already exists'):
            call_command('create_staff_user', 'otieno', '--password', 'x', stdout=StringIO())
