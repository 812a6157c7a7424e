"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import stripe

from storefront import config
from storefront.errors import PaymentDeclined, PaymentError

logger = logging.getLogger(__name__)

# Devises sans sous-unité (montant Stripe = montant entier)
ZERO_DECIMAL_CURRENCIES = {"BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA", "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF"}

# module storefront.payments.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return dict(obj)
    to_dict = getattr(obj, "to_dict", None)
    return to_dict() if callable(to_dict) else dict(obj)

def to_minor_units(amount: Decimal, currency: str) -> int:
    """Montant en plus petite unité Stripe (centimes, agorot...)."""
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def charge_result(charge: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Champs du débit conservés sur la commande (metadata)."""
    return {
        "payment_id": charge.get("id"),
        "authorization_number": charge.get("authorization_code"),
        "document_id": charge.get("balance_transaction") if isinstance(charge.get("balance_transaction"), str) else None,
        "document_number": charge.get("receipt_number"),
        "document_url": charge.get("receipt_url"),
    }

def create_charge(
    *,
    token: str,
    amount: Decimal,
    currency: str,
    order_id: str,
    order_number: str,
    idempotency_key: str,
    description: str = "",
    receipt_email: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """
    Échange un jeton de carte à usage unique contre un débit.
    - idempotency_key: un même (commande, tentative) ne débite jamais deux fois
    - Refus carte: PaymentDeclined (message Stripe destiné à l'acheteur)
    - Autre erreur Stripe: PaymentError
    Retour: champs de résultat (voir charge_result)
    """
    require_stripe()
    try:
        charge = stripe.Charge.create(
            amount=to_minor_units(amount, currency),
            currency=currency.lower(),
            source=token,
            description=description or f"Order #{order_number}",
            receipt_email=receipt_email,
            metadata={"order_id": order_id, "order_number": order_number},
            idempotency_key=idempotency_key,
        )
    except stripe.CardError as e:
        logger.info("stripe.charge declined order_id=%s code=%s", order_id, getattr(e, "code", None))
        raise PaymentDeclined(getattr(e, "user_message", None) or None)
    except stripe.StripeError as e:
        logger.exception("stripe.charge failed order_id=%s", order_id)
        raise PaymentError(getattr(e, "user_message", None) or None)

    data = _as_dict(charge)
    if data.get("status") == "failed" or data.get("paid") is False:
        raise PaymentDeclined(data.get("failure_message") or None)
    return charge_result(data)
