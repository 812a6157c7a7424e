"""Couche service du règlement des commandes.
Deux chemins exclusifs, choisis par la présence d'articles récurrents:
- achat unique: débit Stripe du jeton, puis passage de la commande à « paid »;
- abonnement: transmission du jeton à la plateforme qui crée l'abonnement.
Après un débit réussi, l'échec de la mise à jour de la commande n'est jamais remonté
à l'acheteur: il est journalisé et placé dans la file de réconciliation.
"""
from decimal import Decimal
from typing import Any, Dict, List
import logging

from storefront import config
from storefront.errors import GatewayNotConfigured, ValidationFailed
from storefront.orders import service as orders_service
from storefront.orders.models import FINANCIAL_PAID, PAYMENT_METHOD_CARD
from storefront.payments import platform_client, reconciliation, stripe_client
from storefront.payments.gateway import get_gateway_config
from storefront.payments.models import ChargeRequest, SubscriptionRequest
from storefront.pricing.currency import to_decimal

logger = logging.getLogger(__name__)

RESULT_FIELDS = ("payment_id", "authorization_number", "document_id", "document_number", "document_url")

def _has_recurring(items: List[Dict[str, Any]]) -> bool:
    return any(i.get("billing_cycle") for i in items)

def _require(token, order_id) -> None:
    if not token or not order_id:
        raise ValidationFailed("Missing required fields", code="missing_fields")

def record_payment(order_id: str, charge: Dict[str, Any], payment_method: str = PAYMENT_METHOD_CARD) -> bool:
    """
    Met à jour la commande après un débit réussi (best-effort).
    - Échec: journalisé puis mis en file de réconciliation; retourne False
    """
    try:
        orders_service.mark_paid(order_id, payment_method=payment_method, charge=charge)
        return True
    except Exception as e:
        logger.exception("settlement.record_payment failed order_id=%s payment_id=%s", order_id, charge.get("payment_id"))
        reconciliation.get_queue().enqueue(order_id, payment_method, charge, str(e))
        return False

def apply_reconciliation_entry(entry: Dict[str, Any]) -> None:
    """Rejoue une entrée de la file (lève en cas d'échec pour qu'elle soit remise en file)."""
    orders_service.mark_paid(
        entry["order_id"],
        payment_method=entry.get("payment_method") or PAYMENT_METHOD_CARD,
        charge=entry.get("charge") or {},
    )

def settle_one_time(req: ChargeRequest) -> Dict[str, Any]:
    """
    Règle une commande sans article récurrent.
    - Commande déjà payée: résultat enregistré renvoyé, aucun nouveau débit
    - Montant/devise débités: ceux de la commande persistée
    Retour: {success, payment_id, authorization_number, document_id, document_number, document_url, recorded}
    """
    _require(req.token, req.order_id)
    order, items = orders_service.load_order(req.order_id)
    if _has_recurring(items):
        raise ValidationFailed("Order contains subscription items", code="wrong_settlement_path")

    metadata = order.get("metadata") or {}
    if order.get("financial_status") == FINANCIAL_PAID:
        logger.info("settlement.already_paid order_id=%s", req.order_id)
        return {"success": True, "already_paid": True, **{k: metadata.get(k) for k in RESULT_FIELDS}}

    gateway = get_gateway_config(str(order.get("customer_id") or config.TENANT_ID))
    if not gateway.enabled:
        raise GatewayNotConfigured()

    amount = to_decimal(order.get("total_amount"))
    currency = str(order.get("currency") or config.REFERENCE_CURRENCY)
    if req.amount is not None and abs(to_decimal(req.amount) - amount) > Decimal("0.01"):
        logger.warning(
            "settlement.amount_mismatch order_id=%s client=%s order=%s",
            req.order_id, req.amount, amount,
        )

    result = stripe_client.create_charge(
        token=req.token,
        amount=amount,
        currency=currency,
        order_id=str(order["id"]),
        order_number=str(order["order_number"]),
        idempotency_key=f"{order['id']}:{req.attempt_id or 'charge'}",
        receipt_email=order.get("customer_email"),
    )
    logger.info("settlement.charged order_id=%s payment_id=%s", req.order_id, result.get("payment_id"))
    recorded = record_payment(str(order["id"]), result)
    return {"success": True, **result, "recorded": recorded}

def settle_subscription(req: SubscriptionRequest) -> Dict[str, Any]:
    """
    Règle une commande contenant au moins un article récurrent via la plateforme.
    Aucun débit direct n'est effectué ici.
    """
    _require(req.token, req.order_id)
    order, items = orders_service.load_order(req.order_id)
    if not _has_recurring(items):
        raise ValidationFailed("Order has no subscription items", code="wrong_settlement_path")
    if order.get("financial_status") == FINANCIAL_PAID:
        return {"success": True, "already_paid": True}

    body = platform_client.complete_subscription(str(order["id"]), req.token, attempt_id=req.attempt_id)
    logger.info("settlement.subscription_completed order_id=%s", req.order_id)
    return {
        "success": True,
        "subscription_id": body.get("subscriptionId") or body.get("subscription_id"),
    }
