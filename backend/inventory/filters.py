from django_filters import rest_framework as filters

from .models import IssuanceRecord, Order, StockItem


class IssuanceFilter(filters.FilterSet):
    """
    Issuance record filtering.

    Available filters:
    - order, stock_item: Exact IDs
    - order_number: Invoice number snapshot
    - status: issued, returned, damaged
    - issued_after, issued_before: Date range by issue time
    - issued_by: Case-insensitive match on the issuer
    """
    issued_after = filters.DateTimeFilter(
        field_name='issued_at',
        lookup_expr='gte',
        help_text="Issued at or after this time"
    )
    issued_before = filters.DateTimeFilter(
        field_name='issued_at',
        lookup_expr='lte',
        help_text="Issued at or before this time"
    )
    issued_by = filters.CharFilter(field_name='issued_by', lookup_expr='iexact')
    status = filters.ChoiceFilter(choices=IssuanceRecord.Status.choices)

    class Meta:
        model = IssuanceRecord
        fields = ['order', 'stock_item', 'order_number', 'status', 'issued_after', 'issued_before', 'issued_by']


class OrderFilter(filters.FilterSet):
    """
    Order filtering.

    Available filters:
    - status, order_type, payment_method: Exact choice
    - customer_phone: Exact phone number
    - created_after, created_before: Date range by creation
    - has_balance: Orders with (true) or without (false) an outstanding balance
    """
    status = filters.ChoiceFilter(choices=Order.Status.choices)
    order_type = filters.ChoiceFilter(choices=Order.OrderType.choices)
    payment_method = filters.ChoiceFilter(choices=Order.PaymentMethod.choices)
    created_after = filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')
    has_balance = filters.BooleanFilter(
        method='filter_has_balance',
        help_text="Filter orders with an outstanding balance (true/false)"
    )

    class Meta:
        model = Order
        fields = [
            'status', 'order_type', 'payment_method', 'customer_phone',
            'created_after', 'created_before', 'has_balance',
        ]

    def filter_has_balance(self, queryset, name, value):
        if value is True:
            return queryset.filter(balance_due__gt=0)
        elif value is False:
            return queryset.filter(balance_due__lte=0)
        return queryset


class StockItemFilter(filters.FilterSet):
    stock_type = filters.CharFilter(lookup_expr='iexact')
    supplier = filters.CharFilter(lookup_expr='icontains')
    min_quantity = filters.NumberFilter(field_name='current_quantity', lookup_expr='gte')
    max_quantity = filters.NumberFilter(field_name='current_quantity', lookup_expr='lte')

    class Meta:
        model = StockItem
        fields = ['stock_type', 'supplier', 'color', 'thickness', 'min_quantity', 'max_quantity']
