"""
Module 'client': session acheteur asynchrone (panier, tunnel de commande, tokenisation)
pilotant l'API de la boutique via httpx.
"""

from .storage import ScopedStore, MemoryStore, RedisStore
from .cart import CartItem, CartStore
from .api import ApiError, CheckoutApi
from .tokenization import BridgeState, CardForm, StripeCardTokenizer, TokenizationBridge
from .wizard import CheckoutWizard, SuccessView

__all__ = [
    "ScopedStore",
    "MemoryStore",
    "RedisStore",
    "CartItem",
    "CartStore",
    "ApiError",
    "CheckoutApi",
    "BridgeState",
    "CardForm",
    "StripeCardTokenizer",
    "TokenizationBridge",
    "CheckoutWizard",
    "SuccessView",
]
