from decimal import Decimal

from rest_framework import serializers

from .models import IssuanceRecord, Order, OrderLineItem, StaffProfile, StockItem


# ============================================================================
# Stock Serializers
# ============================================================================

class StockItemSerializer(serializers.ModelSerializer):
    """Stock item with derived inventory figures."""
    remaining_percentage = serializers.DecimalField(max_digits=6, decimal_places=2, read_only=True)
    total_value = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    total_area = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    stock_status = serializers.CharField(read_only=True)

    class Meta:
        model = StockItem
        fields = [
            'id', 'batch_number', 'product_name', 'stock_type', 'thickness', 'color',
            'width', 'height', 'current_quantity', 'original_quantity', 'unit_price',
            'supplier', 'warehouse_location', 'description',
            'remaining_percentage', 'total_value', 'total_area', 'is_low_stock', 'stock_status',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


# ============================================================================
# Order Serializers
# ============================================================================

class OrderLineItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='stock_item.product_name', read_only=True)
    batch_number = serializers.CharField(source='stock_item.batch_number', read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderLineItem
        fields = [
            'id', 'stock_item', 'product_name', 'batch_number',
            'quantity', 'unit_price', 'discount', 'cut_to_size', 'width', 'height',
            'line_total'
        ]
        read_only_fields = ['id', 'product_name', 'batch_number', 'line_total']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderLineItemSerializer(many=True, read_only=True)
    status_display = serializers.ReadOnlyField()
    is_locked = serializers.BooleanField(read_only=True)
    issuance_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'invoice_number', 'customer_name', 'customer_phone', 'customer_address',
            'order_type', 'items', 'total_amount', 'amount_paid', 'balance_due', 'payment_method',
            'delivery_required', 'delivery_address', 'installation_required',
            'status', 'status_display', 'is_locked', 'issuance_count',
            'created_by', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_issuance_count(self, obj):
        return obj.issuances.count()


class OrderLineItemInputSerializer(serializers.Serializer):
    stock_item_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount = serializers.DecimalField(
        max_digits=5, decimal_places=2,
        min_value=Decimal('0'), max_value=Decimal('100'),
        required=False, default=Decimal('0')
    )
    cut_to_size = serializers.BooleanField(required=False, default=False)
    width = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)
    height = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)


class OrderCreateSerializer(serializers.Serializer):
    """Input for creating an order; totals and invoice number are computed server side."""
    customer_name = serializers.CharField(max_length=255)
    customer_phone = serializers.CharField(max_length=50)
    customer_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    order_type = serializers.ChoiceField(choices=Order.OrderType.choices, required=False)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices, required=False)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    delivery_required = serializers.BooleanField(required=False)
    delivery_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    installation_required = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = OrderLineItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class OrderUpdateSerializer(serializers.Serializer):
    """Editable order fields. Invoice number and status are changed elsewhere."""
    customer_name = serializers.CharField(max_length=255, required=False)
    customer_phone = serializers.CharField(max_length=50, required=False)
    customer_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    order_type = serializers.ChoiceField(choices=Order.OrderType.choices, required=False)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices, required=False)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    delivery_required = serializers.BooleanField(required=False)
    delivery_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    installation_required = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
    notes = serializers.CharField(required=False, allow_blank=True)


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)

    def validate_amount(self, value):
        if value <= Decimal('0.00'):
            raise serializers.ValidationError('Amount must be greater than zero')
        return value


# ============================================================================
# Issuance Serializers
# ============================================================================

class IssuanceRecordSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='stock_item.product_name', read_only=True)
    batch_number = serializers.CharField(source='stock_item.batch_number', read_only=True)
    status_color = serializers.CharField(read_only=True)

    class Meta:
        model = IssuanceRecord
        fields = [
            'id', 'issuance_number', 'stock_item', 'product_name', 'batch_number',
            'order', 'order_number', 'issued_to', 'issued_quantity', 'issued_by',
            'issued_at', 'remarks', 'status', 'status_color', 'return_date',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class IssueStockSerializer(serializers.Serializer):
    """Input for issuing stock against an order."""
    stock_item_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    issued_by = serializers.CharField(max_length=255, required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value


class IssuanceRemarksSerializer(serializers.Serializer):
    remarks = serializers.CharField(required=False, allow_blank=True)


# ============================================================================
# Auth Serializers
# ============================================================================

class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)


class StaffUserSerializer(serializers.Serializer):
    """Public view of the logged-in user."""
    id = serializers.IntegerField(source='pk')
    username = serializers.CharField()
    email = serializers.EmailField()
    full_name = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()
    department = serializers.SerializerMethodField()

    def _profile(self, obj):
        try:
            return obj.staff_profile
        except StaffProfile.DoesNotExist:
            return None

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.get_username()

    def get_role(self, obj):
        profile = self._profile(obj)
        return profile.role if profile else None

    def get_department(self, obj):
        profile = self._profile(obj)
        return profile.department if profile else ''
