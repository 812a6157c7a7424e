"""
Client HTTP de la plateforme: finalisation des abonnements après tokenisation.
La plateforme enregistre le moyen de paiement et crée l'abonnement récurrent;
elle reste propriétaire de l'état de facturation des abonnements.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from storefront import config
from storefront.errors import SubscriptionFailed

logger = logging.getLogger(__name__)

POST_PAYMENT_PATH = "/api/public/checkout/post-payment"

# module storefront.payments.platform_client
def complete_subscription(order_id: str, token: str, *, attempt_id: Optional[str] = None) -> Dict[str, Any]:
    """
    POST {orderId, token, tenantId} vers la plateforme.
    - En-tête Idempotency-Key dérivé de la commande et de la tentative
    - Erreur réseau, statut >= 400 ou success != true: SubscriptionFailed
    """
    if not config.PLATFORM_API_URL:
        raise SubscriptionFailed("Subscription service not configured", code="platform_not_configured")
    url = f"{config.PLATFORM_API_URL}{POST_PAYMENT_PATH}"
    headers = {"Idempotency-Key": f"{order_id}:subscription:{attempt_id or 'default'}"}
    try:
        r = httpx.post(
            url,
            json={"orderId": order_id, "token": token, "tenantId": config.TENANT_ID},
            headers=headers,
            timeout=config.PLATFORM_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError:
        logger.exception("platform.complete_subscription unreachable order_id=%s", order_id)
        raise SubscriptionFailed()

    try:
        body = r.json() or {}
    except ValueError:
        body = {}
    if r.status_code >= 400 or not body.get("success"):
        logger.warning("platform.complete_subscription failed order_id=%s status=%s", order_id, r.status_code)
        raise SubscriptionFailed(body.get("error") or None)
    return body
