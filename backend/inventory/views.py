import logging

from django.conf import settings
from rest_framework import filters, generics, status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from .auth import TokenIssuingAuthentication
from .filters import IssuanceFilter, OrderFilter, StockItemFilter
from .models import IssuanceRecord, Order, StockItem
from .permissions import (
    DELETE_ORDERS, ISSUE_STOCK, MANAGE_ORDERS, MARK_DAMAGED, RETURN_STOCK,
    VIEW_ISSUANCES, VIEW_ORDERS, VIEW_STOCK, requires,
)
from .serializers import (
    IssuanceRecordSerializer, IssuanceRemarksSerializer, IssueStockSerializer,
    LoginSerializer, OrderCreateSerializer, OrderSerializer, OrderStatusSerializer,
    OrderUpdateSerializer, PaymentSerializer, StaffUserSerializer, StockItemSerializer,
)
from .services import IssuanceService, OrderService, TokenService
from .services import stock_ledger
from utils.exceptions import IssuanceNotFound, OrderNotFound, StockItemNotFound

logger = logging.getLogger(__name__)


def _get_order(order_id):
    try:
        return Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound()


# ============================================================================
# Authentication
# ============================================================================

def _set_auth_cookies(response, access, refresh):
    cookie_options = {
        'httponly': True,
        'secure': settings.AUTH_COOKIE_SECURE,
        'samesite': settings.AUTH_COOKIE_SAMESITE,
    }
    response.set_cookie(
        settings.ACCESS_TOKEN_COOKIE,
        access,
        max_age=int(settings.JWT_ACCESS_TOKEN_LIFETIME.total_seconds()),
        **cookie_options
    )
    response.set_cookie(
        settings.REFRESH_TOKEN_COOKIE,
        refresh,
        max_age=int(settings.JWT_REFRESH_TOKEN_LIFETIME.total_seconds()),
        **cookie_options
    )


@api_view(['POST'])
@authentication_classes([TokenIssuingAuthentication])
@permission_classes([AllowAny])
def login(request):
    """
    Log in with username and password.

    Request body:
    {
        "username": "jane",
        "password": "..."
    }

    Sets the access and refresh token cookies and returns the user.
    """
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = TokenService.login(
        serializer.validated_data['username'],
        serializer.validated_data['password']
    )

    response = Response({
        'success': True,
        'user': StaffUserSerializer(result['user']).data,
        'access': result['access'],
    })
    _set_auth_cookies(response, result['access'], result['refresh'])
    return response


@api_view(['POST'])
@authentication_classes([TokenIssuingAuthentication])
@permission_classes([AllowAny])
def refresh(request):
    """
    Rotate the refresh token and issue a new access token.

    The refresh token is read from its cookie, or from ``{"refresh": ...}``.
    """
    token = request.COOKIES.get(settings.REFRESH_TOKEN_COOKIE) or request.data.get('refresh')
    result = TokenService.refresh(token)

    response = Response({
        'success': True,
        'user': StaffUserSerializer(result['user']).data,
        'access': result['access'],
    })
    _set_auth_cookies(response, result['access'], result['refresh'])
    return response


@api_view(['POST'])
@authentication_classes([TokenIssuingAuthentication])
@permission_classes([AllowAny])
def logout(request):
    """Revoke the refresh token and clear both auth cookies."""
    token = request.COOKIES.get(settings.REFRESH_TOKEN_COOKIE) or request.data.get('refresh')
    TokenService.revoke(token)

    response = Response({'success': True, 'message': 'Logged out successfully'})
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE, samesite=settings.AUTH_COOKIE_SAMESITE)
    response.delete_cookie(settings.REFRESH_TOKEN_COOKIE, samesite=settings.AUTH_COOKIE_SAMESITE)
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(StaffUserSerializer(request.user).data)


# ============================================================================
# Stock
# ============================================================================

class StockItemListView(generics.ListAPIView):
    """
    List stock items.

    Search fields (use ?search=...): product name, batch number, supplier.
    Filters: stock_type, supplier, color, thickness, min_quantity, max_quantity.
    """
    permission_classes = [requires(VIEW_STOCK)]
    serializer_class = StockItemSerializer
    queryset = StockItem.objects.all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = StockItemFilter
    search_fields = ['product_name', 'batch_number', 'supplier']
    ordering_fields = ['product_name', 'current_quantity', 'unit_price', 'created_at']
    ordering = ['-created_at']


class StockItemDetailView(generics.RetrieveAPIView):
    permission_classes = [requires(VIEW_STOCK)]
    serializer_class = StockItemSerializer
    queryset = StockItem.objects.all()

    def get_object(self):
        try:
            return StockItem.objects.get(pk=self.kwargs['pk'])
        except StockItem.DoesNotExist:
            raise StockItemNotFound()


@api_view(['GET'])
@permission_classes([requires(VIEW_STOCK)])
def low_stock(request):
    """
    Stock items at or below the low stock threshold.

    Optional ``?threshold=`` overrides the configured threshold.
    """
    threshold = request.query_params.get('threshold')
    try:
        threshold = int(threshold) if threshold is not None else None
    except ValueError:
        return Response(
            {'error': 'threshold must be an integer', 'code': 'invalid'},
            status=status.HTTP_400_BAD_REQUEST
        )

    items = stock_ledger.low_stock_items(threshold)
    return Response(StockItemSerializer(items, many=True).data)


@api_view(['GET'])
@permission_classes([requires(VIEW_STOCK)])
def stock_summary(request):
    return Response(stock_ledger.stock_summary())


# ============================================================================
# Orders
# ============================================================================

class OrderListCreateView(generics.ListCreateAPIView):
    """
    List orders or create a new one.

    Search fields (use ?search=...): invoice number, customer name, phone.
    Filters: see OrderFilter.
    """
    permission_classes = [requires(VIEW_ORDERS, POST=MANAGE_ORDERS)]
    serializer_class = OrderSerializer
    queryset = Order.objects.prefetch_related('items__stock_item')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = OrderFilter
    search_fields = ['invoice_number', 'customer_name', 'customer_phone']
    ordering_fields = ['created_at', 'total_amount', 'balance_due', 'status']
    ordering = ['-created_at']

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.create_order(serializer.validated_data, created_by=request.user.get_username())
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [requires(VIEW_ORDERS, PATCH=MANAGE_ORDERS, DELETE=DELETE_ORDERS)]
    serializer_class = OrderSerializer
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def get_object(self):
        return _get_order(self.kwargs['pk'])

    def partial_update(self, request, *args, **kwargs):
        serializer = OrderUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_order(self.get_object(), serializer.validated_data)
        return Response(OrderSerializer(order).data)

    def destroy(self, request, *args, **kwargs):
        OrderService.delete_order(self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([requires(MANAGE_ORDERS)])
def order_status(request, order_id):
    """
    Move an order to a new status.

    Request body:
    {
        "status": "ready",
        "notes": "Optional note"    // a reason is required for "cancelled"
    }
    """
    serializer = OrderStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = _get_order(order_id)
    new_status = serializer.validated_data['status']
    notes = serializer.validated_data.get('notes')

    if new_status == Order.Status.CANCELLED:
        order = OrderService.cancel_order(order, notes)
    else:
        order = OrderService.transition(order, new_status, notes=notes)
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([requires(MANAGE_ORDERS)])
def order_payment(request, order_id):
    serializer = PaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = OrderService.record_payment(_get_order(order_id), serializer.validated_data['amount'])
    return Response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([requires(VIEW_ORDERS)])
def order_summary(request):
    return Response(OrderService.order_summary())


# ============================================================================
# Stock Issuance
# ============================================================================

@api_view(['POST'])
@permission_classes([requires(ISSUE_STOCK)])
def issue_stock(request, order_id):
    """
    Issue stock from inventory to an order.

    Request body:
    {
        "stock_item_id": 12,
        "quantity": "3",
        "issued_by": "jane",        // defaults to the logged-in user
        "remarks": "Cut to size"    // optional
    }
    """
    serializer = IssueStockSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = IssuanceService.issue_stock_to_order(
        order_id,
        data['stock_item_id'],
        data['quantity'],
        issued_by=data.get('issued_by') or request.user.get_username(),
        remarks=data.get('remarks'),
    )
    return Response(result)


@api_view(['POST'])
@permission_classes([requires(RETURN_STOCK)])
def return_issuance(request, issuance_id):
    """Return an issuance's stock to inventory. Body: ``{"remarks": "..."}`` (optional)."""
    serializer = IssuanceRemarksSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = IssuanceService.return_stock(issuance_id, remarks=serializer.validated_data.get('remarks'))
    return Response(result)


@api_view(['POST'])
@permission_classes([requires(MARK_DAMAGED)])
def damage_issuance(request, issuance_id):
    """Mark an issuance as damaged. Body: ``{"remarks": "..."}`` (optional)."""
    serializer = IssuanceRemarksSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = IssuanceService.mark_issuance_damaged(issuance_id, remarks=serializer.validated_data.get('remarks'))
    return Response(result)


class IssuanceListView(generics.ListAPIView):
    """
    List issuance records, newest first.

    Filters: order, stock_item, order_number, status, issued_after,
    issued_before, issued_by.
    """
    permission_classes = [requires(VIEW_ISSUANCES)]
    serializer_class = IssuanceRecordSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_class = IssuanceFilter
    search_fields = ['issuance_number', 'order_number', 'issued_to']

    def get_queryset(self):
        return IssuanceService.list_issuances()


class IssuanceDetailView(generics.RetrieveAPIView):
    permission_classes = [requires(VIEW_ISSUANCES)]
    serializer_class = IssuanceRecordSerializer

    def get_object(self):
        try:
            return IssuanceRecord.objects.select_related('stock_item').get(pk=self.kwargs['pk'])
        except IssuanceRecord.DoesNotExist:
            raise IssuanceNotFound()
