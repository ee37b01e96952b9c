import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('stock_type', models.CharField(help_text='Glass type (tempered, laminated, float) or product class', max_length=100)),
                ('thickness', models.DecimalField(blank=True, decimal_places=2, help_text='mm', max_digits=6, null=True)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('width', models.DecimalField(blank=True, decimal_places=2, help_text='cm', max_digits=8, null=True)),
                ('height', models.DecimalField(blank=True, decimal_places=2, help_text='cm', max_digits=8, null=True)),
                ('batch_number', models.CharField(db_index=True, max_length=100, unique=True)),
                ('current_quantity', models.DecimalField(decimal_places=2, help_text='Units (pieces or square metres) currently on hand', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('original_quantity', models.DecimalField(decimal_places=2, help_text='Units received; fixed at creation', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('supplier', models.CharField(max_length=200)),
                ('warehouse_location', models.CharField(blank=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stock Item',
                'verbose_name_plural': 'Stock Items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['stock_type'], name='inventory_s_stock_t_5c1a2e_idx'),
                    models.Index(fields=['supplier'], name='inventory_s_supplie_0b7d41_idx'),
                    models.Index(fields=['current_quantity'], name='inventory_s_current_9e3f60_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('current_quantity__gte', 0)), name='stock_current_quantity_non_negative', violation_error_message='Current quantity cannot be negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(db_index=True, max_length=20, unique=True)),
                ('customer_name', models.CharField(max_length=255)),
                ('customer_phone', models.CharField(db_index=True, max_length=50)),
                ('customer_address', models.CharField(blank=True, max_length=255)),
                ('order_type', models.CharField(choices=[('retail', 'Retail'), ('wholesale', 'Wholesale'), ('contract', 'Contract')], db_index=True, default='retail', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('amount_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('balance_due', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('card', 'Card'), ('credit', 'Credit')], default='cash', max_length=20)),
                ('delivery_required', models.BooleanField(default=False)),
                ('delivery_address', models.CharField(blank=True, max_length=255)),
                ('installation_required', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('ready', 'Ready'), ('delivered', 'Delivered'), ('installed', 'Installed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('created_by', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='inventory_o_status_4d2b8a_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Percentage discount (0-100)', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('cut_to_size', models.BooleanField(default=False)),
                ('width', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('height', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='inventory.order')),
                ('stock_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='inventory.stockitem')),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='IssuanceRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('issuance_number', models.CharField(db_index=True, max_length=20, unique=True)),
                ('order_number', models.CharField(db_index=True, max_length=20)),
                ('issued_to', models.CharField(help_text='Customer name at issue time', max_length=255)),
                ('issued_quantity', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('issued_by', models.CharField(max_length=255)),
                ('issued_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('remarks', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('issued', 'Issued'), ('returned', 'Returned'), ('damaged', 'Damaged')], db_index=True, default='issued', max_length=20)),
                ('return_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='issuances', to='inventory.order')),
                ('stock_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='issuances', to='inventory.stockitem')),
            ],
            options={
                'verbose_name': 'Issuance Record',
                'verbose_name_plural': 'Issuance Records',
                'ordering': ['-issued_at'],
                'indexes': [
                    models.Index(fields=['stock_item', 'status'], name='inventory_i_stock_i_7a1c3d_idx'),
                    models.Index(fields=['order', 'status'], name='inventory_i_order_i_2e8f94_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('issued_quantity__gt', 0)), name='issuance_quantity_positive', violation_error_message='Issued quantity must be greater than zero'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StaffProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('ceo', 'CEO'), ('staff', 'Shop Staff'), ('laboratory', 'Laboratory'), ('pharmacy', 'Pharmacy')], db_index=True, default='staff', max_length=20)),
                ('approved', models.BooleanField(default=False, help_text='Accounts must be approved by an admin before they can log in')),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('department', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='staff_profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='RefreshToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('jti', models.CharField(db_index=True, max_length=64, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expires_at', models.DateTimeField()),
                ('revoked_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='refresh_tokens', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
