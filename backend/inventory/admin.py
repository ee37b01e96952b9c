from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import IssuanceRecord, Order, OrderLineItem, StaffProfile, StockItem
from utils.constants import ORDER_STATUS_COLORS


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    """Admin interface for stock items. Quantities are set once, on creation."""
    list_display = [
        'batch_number', 'product_name', 'stock_type', 'supplier',
        'current_quantity', 'original_quantity', 'unit_price', 'stock_badge', 'issuance_count'
    ]
    list_filter = ['stock_type', 'supplier', 'created_at']
    search_fields = ['batch_number', 'product_name', 'supplier']

    fieldsets = (
        ('Product', {
            'fields': ('product_name', 'stock_type', 'batch_number', 'description')
        }),
        ('Dimensions', {
            'fields': ('thickness', 'color', 'width', 'height')
        }),
        ('Inventory', {
            'fields': ('current_quantity', 'original_quantity', 'unit_price')
        }),
        ('Sourcing', {
            'fields': ('supplier', 'warehouse_location')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        readonly = ['created_at', 'updated_at']
        if obj is not None:
            # After creation only issuances and returns move stock
            readonly += ['current_quantity', 'original_quantity']
        return readonly

    def stock_badge(self, obj):
        colors = {'OUT_OF_STOCK': '#EF4444', 'LOW_STOCK': '#F59E0B', 'IN_STOCK': '#10B981'}
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            colors[obj.stock_status],
            obj.stock_status.replace('_', ' ').title()
        )
    stock_badge.short_description = 'Stock'

    def issuance_count(self, obj):
        count = obj.issuances.count()
        if count > 0:
            url = reverse('admin:inventory_issuancerecord_changelist') + f'?stock_item__id__exact={obj.id}'
            return format_html('<a href="{}">{} issuances</a>', url, count)
        return '0 issuances'
    issuance_count.short_description = 'Issuances'


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    can_delete = False
    fields = ['stock_item', 'quantity', 'unit_price', 'discount', 'cut_to_size', 'width', 'height', 'line_total']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class IssuanceRecordInline(admin.TabularInline):
    model = IssuanceRecord
    extra = 0
    can_delete = False
    fields = ['issuance_number', 'stock_item', 'issued_quantity', 'issued_by', 'issued_at', 'status']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin interface for orders.

    Orders are created through the API so that invoice numbers and totals
    are allocated consistently; here they can be reviewed and annotated.
    """
    list_display = [
        'invoice_number', 'customer_name', 'customer_phone', 'status_badge',
        'total_amount', 'amount_paid', 'balance_due', 'created_at'
    ]
    list_filter = ['status', 'order_type', 'payment_method', 'created_at']
    search_fields = ['invoice_number', 'customer_name', 'customer_phone']
    readonly_fields = [
        'invoice_number', 'status', 'total_amount', 'amount_paid', 'balance_due',
        'created_by', 'created_at', 'updated_at'
    ]
    inlines = [OrderLineItemInline, IssuanceRecordInline]

    fieldsets = (
        ('Order', {
            'fields': ('invoice_number', 'status', 'order_type', 'created_by')
        }),
        ('Customer', {
            'fields': ('customer_name', 'customer_phone', 'customer_address')
        }),
        ('Payment', {
            'fields': ('total_amount', 'amount_paid', 'balance_due', 'payment_method')
        }),
        ('Delivery', {
            'fields': ('delivery_required', 'delivery_address', 'installation_required')
        }),
        ('Notes', {
            'fields': ('notes',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        return False

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            ORDER_STATUS_COLORS.get(obj.status, '#6B7280'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'


@admin.register(IssuanceRecord)
class IssuanceRecordAdmin(admin.ModelAdmin):
    """Issuance records are an audit trail: read-only and never deleted."""
    list_display = [
        'issuance_number', 'order_number', 'stock_item', 'issued_quantity',
        'issued_to', 'issued_by', 'issued_at', 'status_badge'
    ]
    list_filter = ['status', 'issued_at']
    search_fields = ['issuance_number', 'order_number', 'issued_to', 'issued_by', 'stock_item__batch_number']
    date_hierarchy = 'issued_at'
    readonly_fields = [
        'issuance_number', 'stock_item', 'order', 'order_number', 'issued_to',
        'issued_quantity', 'issued_by', 'issued_at', 'status', 'return_date',
        'created_at', 'updated_at'
    ]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            obj.status_color,
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'department', 'approved', 'created_at']
    list_filter = ['role', 'approved']
    list_editable = ['approved']
    search_fields = ['user__username', 'user__email', 'department']
    readonly_fields = ['created_at', 'updated_at']
    actions = ['approve_accounts']

    @admin.action(description='Approve selected accounts')
    def approve_accounts(self, request, queryset):
        updated = queryset.update(approved=True)
        self.message_user(request, f'{updated} account(s) approved.')
