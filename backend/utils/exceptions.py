"""
Custom exceptions for the Clinic Inventory System.

Services raise these directly; the DRF exception handler at the bottom of
this module turns them (and anything else that escapes a view) into the
``{"error": ..., "code": ...}`` response body used by every endpoint.
"""

import logging
from decimal import Decimal

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _plain(value):
    """Render a quantity without trailing zeros (Decimal('2.00') -> '2')."""
    return format(Decimal(str(value)).normalize(), 'f')


class OrderNotFound(APIException):
    """
    Exception raised when the referenced order does not exist.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Order not found.'
    default_code = 'order_not_found'


class StockItemNotFound(APIException):
    """
    Exception raised when the referenced stock item does not exist.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Stock item not found.'
    default_code = 'stock_item_not_found'


class IssuanceNotFound(APIException):
    """
    Exception raised when the referenced issuance record does not exist.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Issuance record not found.'
    default_code = 'issuance_not_found'


class InvalidOrderState(APIException):
    """
    Exception raised when stock is issued against an order that is
    cancelled, delivered or installed.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Order is not in a state that allows issuing stock.'
    default_code = 'invalid_order_state'


class OrderLocked(APIException):
    """
    Exception raised when attempting to edit an order in a terminal state.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This order is closed and cannot be modified.'
    default_code = 'order_locked'


class InvalidStatusTransitionError(APIException):
    """
    Exception raised when attempting an invalid status transition.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_status_transition'


class InsufficientStock(APIException):
    """
    Exception raised when the requested quantity exceeds the stock on hand.
    The response body carries both figures.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Insufficient stock.'
    default_code = 'insufficient_stock'

    def __init__(self, available, requested):
        self.available = _plain(available)
        self.requested = _plain(requested)
        self.extra = {'available': self.available, 'requested': self.requested}
        super().__init__(
            f'Insufficient stock. Available: {self.available}, Requested: {self.requested}'
        )


class PaymentExceedsBalance(APIException):
    """
    Exception raised when a payment is larger than the order's balance due.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Payment exceeds the balance due on this order.'
    default_code = 'payment_exceeds_balance'


class AlreadyReturned(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Stock already returned.'
    default_code = 'already_returned'


class AlreadyDamaged(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Stock already marked as damaged.'
    default_code = 'already_damaged'


class HasIssuances(APIException):
    """
    Exception raised when deleting an order (or stock item) that is
    referenced by issuance records.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Cannot delete order that has stock issuances.'
    default_code = 'has_issuances'


class DuplicateNumberError(APIException):
    """
    Exception raised when no free daily number could be allocated.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Could not allocate a unique number. Please retry.'
    default_code = 'duplicate_number'


def api_exception_handler(exc, context):
    """
    Render every error as ``{"error": message, "code": code}``.

    Serializer and model validation errors carry field-level ``details``.
    Anything DRF does not recognise is logged and returned as a generic 500.
    """
    if isinstance(exc, DjangoValidationError):
        details = exc.message_dict if hasattr(exc, 'error_dict') else {'non_field_errors': exc.messages}
        return Response(
            {'error': 'Invalid request body', 'code': 'invalid', 'details': details},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, ProtectedError):
        return Response(
            {'error': 'Record is referenced by issuance records and cannot be deleted.', 'code': 'has_issuances'},
            status=status.HTTP_409_CONFLICT
        )

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response(
            {'error': 'Internal server error', 'code': 'internal_error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, ValidationError):
        response.data = {'error': 'Invalid request body', 'code': 'invalid', 'details': response.data}
        return response

    if isinstance(exc, Http404):
        code = 'not_found'
    elif isinstance(exc, DjangoPermissionDenied):
        code = 'permission_denied'
    else:
        code = getattr(exc, 'default_code', 'error')

    detail = response.data.get('detail', response.data) if isinstance(response.data, dict) else response.data
    body = {'error': str(detail), 'code': code}
    body.update(getattr(exc, 'extra', {}))
    response.data = body
    return response
