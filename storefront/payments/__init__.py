"""
Module 'payments' (feature-first): point d'entrée public.
Réunit configuration de la passerelle, client Stripe, client plateforme,
règlement des commandes et file de réconciliation.
"""

from .gateway import GatewayConfig, get_gateway_config
from .stripe_client import require_stripe, create_charge, charge_result
from .platform_client import complete_subscription
from .reconciliation import ReconciliationQueue, get_queue
from .settlement import settle_one_time, settle_subscription, record_payment

__all__ = [
    # gateway
    "GatewayConfig",
    "get_gateway_config",
    # stripe
    "require_stripe",
    "create_charge",
    "charge_result",
    # platform
    "complete_subscription",
    # reconciliation
    "ReconciliationQueue",
    "get_queue",
    # services
    "settle_one_time",
    "settle_subscription",
    "record_payment",
]
