"""
Django management command to import stock items from a CSV file.

Expected columns (header row required):
    batch_number, product_name, stock_type, quantity, unit_price, supplier
Optional columns:
    thickness, color, width, height, warehouse_location, description

Existing batches are matched on batch_number. Their descriptive fields and
price are updated; quantities are left alone, since after creation stock only
moves through issuances and returns.

Usage:
    python manage.py import_stock stock.csv
    python manage.py import_stock stock.csv --clear  # Remove unreferenced stock first
"""

import csv
from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from inventory.models import IssuanceRecord, OrderLineItem, StockItem

REQUIRED_COLUMNS = ['batch_number', 'product_name', 'stock_type', 'quantity', 'unit_price', 'supplier']
OPTIONAL_DECIMALS = ['thickness', 'width', 'height']
OPTIONAL_TEXT = ['color', 'warehouse_location', 'description']


class Command(BaseCommand):
    help = 'Import stock items from a CSV file'

    def add_arguments(self, parser):
        parser.add_argument('csv_path', help='Path to the CSV file')
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete existing stock items not referenced by orders or issuances before importing',
        )

    def handle(self, *args, **options):
        try:
            with open(options['csv_path'], newline='', encoding='utf-8-sig') as handle:
                rows = list(csv.DictReader(handle))
        except OSError as e:
            raise CommandError(f"Cannot read {options['csv_path']}: {e}")

        if not rows:
            raise CommandError('CSV file has no data rows')

        missing = [column for column in REQUIRED_COLUMNS if column not in rows[0]]
        if missing:
            raise CommandError(f"Missing required columns: {', '.join(missing)}")

        created_count = 0
        updated_count = 0
        skipped_count = 0

        with transaction.atomic():
            if options['clear']:
                referenced = set(IssuanceRecord.objects.values_list('stock_item_id', flat=True))
                referenced |= set(OrderLineItem.objects.values_list('stock_item_id', flat=True))
                deletable = StockItem.objects.exclude(id__in=referenced)
                deleted_count = deletable.count()
                deletable.delete()
                self.stdout.write(
                    self.style.WARNING(
                        f'Deleted {deleted_count} existing stock items '
                        f'({len(referenced)} kept: referenced by orders or issuances)'
                    )
                )

            for line_number, row in enumerate(rows, start=2):
                try:
                    fields = self.parse_row(row)
                except ValueError as e:
                    skipped_count += 1
                    self.stdout.write(self.style.ERROR(f'✗ Line {line_number}: {e}'))
                    continue

                quantity = fields.pop('quantity')
                batch_number = fields.pop('batch_number')

                item, created = StockItem.objects.update_or_create(
                    batch_number=batch_number,
                    defaults=fields,
                    create_defaults={**fields, 'current_quantity': quantity, 'original_quantity': quantity},
                )

                if created:
                    created_count += 1
                    self.stdout.write(
                        self.style.SUCCESS(f'✓ Created: {batch_number} - {item.product_name} ({quantity})')
                    )
                else:
                    updated_count += 1
                    self.stdout.write(
                        self.style.WARNING(f'↻ Updated: {batch_number} - {item.product_name} (quantity unchanged)')
                    )

        self.stdout.write(self.style.SUCCESS('\n' + '=' * 70))
        self.stdout.write(self.style.SUCCESS('IMPORT SUMMARY'))
        self.stdout.write(self.style.SUCCESS('=' * 70))
        self.stdout.write(self.style.SUCCESS(f'Created: {created_count}'))
        self.stdout.write(self.style.WARNING(f'Updated: {updated_count}'))
        self.stdout.write(self.style.ERROR(f'Skipped: {skipped_count}'))
        self.stdout.write(self.style.SUCCESS(f'Total Stock Items: {StockItem.objects.count()}'))
        self.stdout.write(self.style.SUCCESS('=' * 70))

    def parse_row(self, row):
        for column in REQUIRED_COLUMNS:
            if not (row.get(column) or '').strip():
                raise ValueError(f'{column} is required')

        fields = {
            'batch_number': row['batch_number'].strip(),
            'product_name': row['product_name'].strip(),
            'stock_type': row['stock_type'].strip(),
            'supplier': row['supplier'].strip(),
            'quantity': self.parse_decimal(row, 'quantity'),
            'unit_price': self.parse_decimal(row, 'unit_price'),
        }
        if fields['quantity'] < 0 or fields['unit_price'] < 0:
            raise ValueError('quantity and unit_price must not be negative')

        for column in OPTIONAL_DECIMALS:
            if (row.get(column) or '').strip():
                fields[column] = self.parse_decimal(row, column)
        for column in OPTIONAL_TEXT:
            if (row.get(column) or '').strip():
                fields[column] = row[column].strip()
        return fields

    def parse_decimal(self, row, column):
        try:
            return Decimal(row[column].strip())
        except InvalidOperation:
            raise ValueError(f'{column} must be a number, got {row[column]!r}')
