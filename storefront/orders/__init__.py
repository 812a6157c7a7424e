"""
Module 'orders' (feature-first): création transactionnelle des commandes et suivi de leur statut.
"""

from .models import CheckoutRequest, CheckoutResponse, CreatedOrder, OrderLine, UpdateStatusRequest
from .service import create_order, get_order_status, load_order, mark_paid

__all__ = [
    # models
    "CheckoutRequest",
    "CheckoutResponse",
    "CreatedOrder",
    "OrderLine",
    "UpdateStatusRequest",
    # services
    "create_order",
    "get_order_status",
    "load_order",
    "mark_paid",
]
