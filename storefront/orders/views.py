import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from storefront.config import TENANT_ID
from storefront.orders import service as orders_service
from storefront.orders.models import CheckoutRequest, CheckoutResponse, UpdateStatusRequest
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_admin_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])
orders_router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

# module storefront.orders.views
@router.post(
    "",
    response_model=CheckoutResponse,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
def create_checkout(payload: CheckoutRequest) -> CheckoutResponse:
    """
    Crée une commande « pending » à partir du panier.
    - Entrée JSON: {buyer: {...}, items: [{product_id, quantity, display_price?}], currency?, display_total?}
    - Réponse: {success, order_id, order_number, total, currency, status, hasSubscriptions}
    - Erreurs: 400 (acheteur/panier/produits/prix), 500 (échec de persistance)
    """
    created = orders_service.create_order(payload)
    return created.to_response()

@router.get("")
def checkout_status() -> Dict[str, Any]:
    return {"status": "ok", "message": "Checkout API is active", "store_id": TENANT_ID}

@router.post("/update-status")
def update_status(payload: UpdateStatusRequest, _: str = Depends(require_admin_token)) -> Dict[str, Any]:
    """
    Enregistre un règlement constaté hors du tunnel (bookkeeping post-paiement).
    - Idempotent: une commande déjà payée n'est pas réécrite (updated=false)
    """
    updated = orders_service.mark_paid(
        payload.order_id,
        payment_method=payload.payment_method,
        charge=payload.charge_fields(),
    )
    return {"success": True, "updated": updated}

@orders_router.get("/{order_id}")
def order_status(order_id: str) -> Dict[str, Any]:
    """État d'une commande pour la page de succès (numéro, statut financier, paiement en attente)."""
    return orders_service.get_order_status(order_id)
