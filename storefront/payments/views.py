import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from storefront import config
from storefront.payments import reconciliation, settlement
from storefront.payments.gateway import get_gateway_config
from storefront.payments.models import ChargeRequest, SubscriptionRequest
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_admin_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module storefront.payments.views
@router.get("/config")
def payment_config() -> Dict[str, Any]:
    """
    Configuration publique de la passerelle pour la tokenisation côté client.
    - Réponse: {enabled, companyId, apiPublicKey, isTest}; enabled=false si non configurée
    """
    return get_gateway_config(config.TENANT_ID).to_dict()

@router.post("/charge", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def charge(payload: ChargeRequest) -> Dict[str, Any]:
    """
    Débit unique d'un jeton de carte pour une commande sans abonnement.
    - Entrée JSON: {token, order_id, amount?, currency?, attempt_id?}
    - Erreurs: 400 champs manquants/mauvais chemin, 402 refus, 404 commande, 503 passerelle absente
    """
    return settlement.settle_one_time(payload)

@router.post("/subscription", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def subscription(payload: SubscriptionRequest) -> Dict[str, Any]:
    """Finalise une commande avec abonnement: le jeton est transmis à la plateforme."""
    return settlement.settle_subscription(payload)

@router.get("/reconciliation")
def reconciliation_pending(limit: int = 100, _: str = Depends(require_admin_token)) -> Dict[str, Any]:
    queue = reconciliation.get_queue()
    return {"size": queue.size(), "entries": queue.pending(limit)}

@router.post("/reconciliation/retry")
def reconciliation_retry(_: str = Depends(require_admin_token)) -> Dict[str, Any]:
    stats = reconciliation.get_queue().retry(settlement.apply_reconciliation_entry)
    logger.info("reconciliation.retry stats=%s", stats)
    return stats
