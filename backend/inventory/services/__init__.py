"""
Services package for inventory business logic.
"""
from .issuance_service import IssuanceService
from .order_service import OrderService
from .token_service import TokenService

__all__ = ['IssuanceService', 'OrderService', 'TokenService']
