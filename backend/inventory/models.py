from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from utils.constants import (
    ISSUANCE_STATUS_COLORS, ORDER_STATUS_COLORS,
    STOCK_STATUS_IN, STOCK_STATUS_LOW, STOCK_STATUS_OUT,
)


class StaffProfile(models.Model):
    """
    Role and approval state for a staff login.

    The role is copied into every access token and checked against the
    capability map in ``inventory.permissions``.
    """

    class Role(models.TextChoices):
        ADMIN = 'admin', 'Administrator'
        CEO = 'ceo', 'CEO'
        STAFF = 'staff', 'Shop Staff'
        LABORATORY = 'laboratory', 'Laboratory'
        PHARMACY = 'pharmacy', 'Pharmacy'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='staff_profile'
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STAFF, db_index=True)
    approved = models.BooleanField(
        default=False,
        help_text="Accounts must be approved by an admin before they can log in"
    )
    phone = models.CharField(max_length=50, blank=True)
    department = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.get_username()} ({self.get_role_display()})"


class RefreshToken(models.Model):
    """
    Server-side record of an issued refresh token.

    A refresh token is only honoured while its record exists and is not
    revoked, so logout and rotation take effect immediately.
    """
    jti = models.CharField(max_length=64, unique=True, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='refresh_tokens'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Refresh token {self.jti[:8]} for {self.user}"

    @property
    def is_active(self):
        return self.revoked_at is None and self.expires_at > timezone.now()


class StockItem(models.Model):
    """
    A received batch of a physical good (a cut of glass, a medicine batch).

    ``current_quantity`` is the authoritative on-hand amount and is only
    written by ``inventory.services.stock_ledger``.
    """
    product_name = models.CharField(max_length=200)
    stock_type = models.CharField(
        max_length=100,
        help_text="Glass type (tempered, laminated, float) or product class"
    )
    thickness = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True, help_text="mm")
    color = models.CharField(max_length=50, blank=True)
    width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="cm")
    height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="cm")
    batch_number = models.CharField(max_length=100, unique=True, db_index=True)

    current_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Units (pieces or square metres) currently on hand"
    )
    original_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Units received; fixed at creation"
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )

    supplier = models.CharField(max_length=200)
    warehouse_location = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Stock Item'
        verbose_name_plural = 'Stock Items'
        indexes = [
            models.Index(fields=['stock_type'], name='inventory_s_stock_t_5c1a2e_idx'),
            models.Index(fields=['supplier'], name='inventory_s_supplie_0b7d41_idx'),
            models.Index(fields=['current_quantity'], name='inventory_s_current_9e3f60_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_quantity__gte=0),
                name='stock_current_quantity_non_negative',
                violation_error_message='Current quantity cannot be negative'
            ),
        ]

    def __str__(self):
        return f"{self.batch_number} - {self.product_name}"

    @property
    def remaining_percentage(self):
        if not self.original_quantity:
            return Decimal('0')
        return (self.current_quantity / self.original_quantity * 100).quantize(Decimal('0.01'))

    @property
    def total_value(self):
        return self.current_quantity * self.unit_price

    @property
    def total_area(self):
        """Area on hand in square metres (width and height are in cm)."""
        if not self.width or not self.height:
            return Decimal('0.00')
        return (self.width / 100 * self.height / 100 * self.current_quantity).quantize(Decimal('0.01'))

    @property
    def is_low_stock(self):
        return self.current_quantity <= settings.LOW_STOCK_THRESHOLD

    @property
    def stock_status(self):
        if self.current_quantity <= 0:
            return STOCK_STATUS_OUT
        if self.is_low_stock:
            return STOCK_STATUS_LOW
        return STOCK_STATUS_IN

    def clean(self):
        super().clean()

        if self.original_quantity is None or self.current_quantity is None:
            return

        # Returns may push an existing item past its original quantity; only
        # new items are held to the bound.
        if self._state.adding and self.current_quantity > self.original_quantity:
            raise ValidationError({
                'current_quantity': f'Current quantity ({self.current_quantity}) cannot exceed '
                                    f'original quantity ({self.original_quantity})'
            })


class Order(models.Model):
    """
    A customer order for stock items.

    ``balance_due`` is recomputed from ``total_amount`` and ``amount_paid``
    on every save.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PROCESSING = 'processing', 'Processing'
        READY = 'ready', 'Ready'
        DELIVERED = 'delivered', 'Delivered'
        INSTALLED = 'installed', 'Installed'
        CANCELLED = 'cancelled', 'Cancelled'

    class OrderType(models.TextChoices):
        RETAIL = 'retail', 'Retail'
        WHOLESALE = 'wholesale', 'Wholesale'
        CONTRACT = 'contract', 'Contract'

    class PaymentMethod(models.TextChoices):
        CASH = 'cash', 'Cash'
        CARD = 'card', 'Card'
        CREDIT = 'credit', 'Credit'

    # Stock cannot be issued against an order in one of these states
    ISSUE_BLOCKED_STATUSES = (Status.CANCELLED, Status.DELIVERED, Status.INSTALLED)

    invoice_number = models.CharField(max_length=20, unique=True, db_index=True)
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=50, db_index=True)
    customer_address = models.CharField(max_length=255, blank=True)
    order_type = models.CharField(
        max_length=20,
        choices=OrderType.choices,
        default=OrderType.RETAIL,
        db_index=True
    )

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    amount_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    balance_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)

    delivery_required = models.BooleanField(default=False)
    delivery_address = models.CharField(max_length=255, blank=True)
    installation_required = models.BooleanField(default=False)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    created_by = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='inventory_o_status_4d2b8a_idx'),
        ]

    def __str__(self):
        return f"Order {self.invoice_number} for {self.customer_name}"

    @property
    def is_locked(self):
        """Cancelled, delivered and installed orders are closed."""
        return self.status in self.ISSUE_BLOCKED_STATUSES

    @property
    def status_display(self):
        return {
            'status': self.status,
            'label': self.get_status_display(),
            'color': ORDER_STATUS_COLORS.get(self.status, '#6B7280'),
            'is_locked': self.is_locked,
        }

    def can_transition_to(self, new_status):
        """
        Valid transitions:
        - pending → processing, cancelled
        - processing → ready, cancelled
        - ready → delivered, cancelled
        - delivered → installed (only when installation is required)
        - installed, cancelled → (terminal)
        """
        valid_transitions = {
            self.Status.PENDING.value: [self.Status.PROCESSING, self.Status.CANCELLED],
            self.Status.PROCESSING.value: [self.Status.READY, self.Status.CANCELLED],
            self.Status.READY.value: [self.Status.DELIVERED, self.Status.CANCELLED],
            self.Status.DELIVERED.value: [self.Status.INSTALLED] if self.installation_required else [],
        }
        return new_status in valid_transitions.get(self.status, [])

    def calculate_total(self):
        return sum((item.line_total for item in self.items.all()), Decimal('0.00'))

    def save(self, *args, **kwargs):
        self.balance_due = self.total_amount - self.amount_paid
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and ({'total_amount', 'amount_paid'} & set(update_fields)):
            kwargs['update_fields'] = set(update_fields) | {'balance_due'}
        super().save(*args, **kwargs)


class OrderLineItem(models.Model):
    """A stock item requested on an order, with price and percentage discount."""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    stock_item = models.ForeignKey(StockItem, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
        help_text="Percentage discount (0-100)"
    )
    cut_to_size = models.BooleanField(default=False)
    width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.stock_item.product_name} ({self.order.invoice_number})"

    @property
    def line_total(self):
        gross = self.quantity * self.unit_price
        return (gross - gross * self.discount / 100).quantize(Decimal('0.01'))


class IssuanceRecord(models.Model):
    """
    Audit entry for stock moved from inventory into an order.

    Created only by the issuance service. ``issued_quantity`` never changes
    after creation; only status, return date and remarks do.
    """

    class Status(models.TextChoices):
        ISSUED = 'issued', 'Issued'
        RETURNED = 'returned', 'Returned'
        DAMAGED = 'damaged', 'Damaged'

    issuance_number = models.CharField(max_length=20, unique=True, db_index=True)
    stock_item = models.ForeignKey(StockItem, on_delete=models.PROTECT, related_name='issuances')
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name='issuances')

    # Snapshots taken from the order at issue time
    order_number = models.CharField(max_length=20, db_index=True)
    issued_to = models.CharField(max_length=255, help_text="Customer name at issue time")

    issued_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    issued_by = models.CharField(max_length=255)
    issued_at = models.DateTimeField(default=timezone.now, db_index=True)
    remarks = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ISSUED,
        db_index=True
    )
    return_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-issued_at']
        verbose_name = 'Issuance Record'
        verbose_name_plural = 'Issuance Records'
        indexes = [
            models.Index(fields=['stock_item', 'status'], name='inventory_i_stock_i_7a1c3d_idx'),
            models.Index(fields=['order', 'status'], name='inventory_i_order_i_2e8f94_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(issued_quantity__gt=0),
                name='issuance_quantity_positive',
                violation_error_message='Issued quantity must be greater than zero'
            ),
        ]

    def __str__(self):
        return f"{self.issuance_number}: {self.issued_quantity} of {self.stock_item_id} to {self.order_number}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_issued_quantity = instance.__dict__.get('issued_quantity')
        return instance

    @property
    def status_color(self):
        return ISSUANCE_STATUS_COLORS.get(self.status, '#6B7280')

    def append_remarks(self, label, remarks):
        """Append ``"<label>: <remarks>"`` to the existing remarks with a ``|`` delimiter."""
        if not remarks:
            return
        entry = f"{label}: {remarks}"
        self.remarks = f"{self.remarks} | {entry}" if self.remarks else entry

    def save(self, *args, **kwargs):
        loaded = getattr(self, '_loaded_issued_quantity', None)
        if self.pk and loaded is not None and Decimal(self.issued_quantity) != Decimal(loaded):
            raise ValidationError({
                'issued_quantity': 'Issued quantity cannot be changed after issuance'
            })
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Issuance records are part of the audit trail and cannot be deleted')
