"""
Shared object builders for inventory tests.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from inventory.models import Order, StaffProfile, StockItem
from inventory.services.token_service import TokenService

_counter = {'batch': 0, 'order': 0}


def make_stock_item(quantity='5', **overrides):
    _counter['batch'] += 1
    quantity = Decimal(str(quantity))
    fields = {
        'product_name': '6mm Clear Float Glass',
        'stock_type': 'float',
        'thickness': Decimal('6.00'),
        'color': 'clear',
        'width': Decimal('200.00'),
        'height': Decimal('100.00'),
        'batch_number': f'BATCH-{_counter["batch"]:04d}',
        'current_quantity': quantity,
        'original_quantity': quantity,
        'unit_price': Decimal('1500.00'),
        'supplier': 'Nairobi Glass Ltd',
    }
    fields.update(overrides)
    return StockItem.objects.create(**fields)


def make_order(status=Order.Status.PENDING, **overrides):
    _counter['order'] += 1
    fields = {
        'invoice_number': f'INV-20250101-{_counter["order"]:04d}',
        'customer_name': 'Jane Wanjiku',
        'customer_phone': '0712345678',
        'total_amount': Decimal('4500.00'),
        'status': status,
    }
    fields.update(overrides)
    return Order.objects.create(**fields)


def make_user(username='staffer', role=StaffProfile.Role.STAFF, password='s3cret-pass', approved=True, **extra):
    user = get_user_model().objects.create_user(username=username, password=password, **extra)
    StaffProfile.objects.create(user=user, role=role, approved=approved)
    return user


def api_client_for(user):
    """APIClient sending a Bearer access token for ``user``."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {TokenService.create_access_token(user)}')
    return client
