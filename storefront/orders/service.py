"""Couche service de la feature Commandes.
Rôles:
- Créer une commande « pending » à partir du panier et de l'acheteur, en une seule transaction:
  contact (recherche ou création), produits actifs, prix, numéro de commande, commande et lignes.
- Exposer l'état d'une commande (page de succès, règlement).
- Marquer une commande payée (écriture idempotente, utilisée après un débit réussi).
Politique de prix (PRICE_POLICY):
- "verify": les prix d'affichage sont recalculés par le résolveur; un prix ou total client
  divergent est refusé.
- "trust": les prix et le total fournis par le client sont repris tels quels.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

import storefront.infra.db as db
from storefront import config
from storefront.catalog.models import Product
from storefront.errors import CheckoutError, OrderCreationFailed, OrderNotFound, ProductsNotFound, ValidationFailed
from storefront.notifications import service as notifications
from storefront.orders import repository
from storefront.orders.models import (
    BuyerIn,
    CheckoutItemIn,
    CheckoutRequest,
    CreatedOrder,
    OrderLine,
    FINANCIAL_PAID,
    FINANCIAL_PENDING,
    FULFILLMENT_FULFILLED,
    PAYMENT_METHOD_PENDING,
)
from storefront.pricing import rates
from storefront.pricing.currency import resolve_price, to_decimal
from storefront.utils.validators import EMAIL_RE, is_uuid

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = Decimal("0.01")
PRICE_CHANGED = "Prices have changed. Please review your order."

def validate_request(req: CheckoutRequest) -> Tuple[BuyerIn, List[str]]:
    """
    Contrôles préalables (aucune écriture):
    - acheteur: email, prénom, nom obligatoires; email bien formé
    - panier non vide, sans doublon
    Retour: (acheteur, ids produits dans l'ordre du panier)
    """
    buyer = req.buyer
    if buyer is None or not all((v or "").strip() for v in (buyer.email, buyer.first_name, buyer.last_name)):
        raise ValidationFailed("Missing required buyer information", code="missing_buyer")
    if not EMAIL_RE.match(buyer.email.strip()):
        raise ValidationFailed("Invalid email address", code="invalid_email")
    if not req.items:
        raise ValidationFailed("Cart is empty", code="empty_cart")
    ids = [i.product_id for i in req.items]
    if len(set(ids)) != len(ids):
        raise ValidationFailed("Duplicate product in cart", code="duplicate_item")
    return buyer, ids

def resolve_contact(conn, tenant_id: str, buyer: BuyerIn) -> str:
    """Retourne l'id du contact (tenant, email insensible à la casse), créé si absent."""
    email = buyer.email.strip().lower()
    existing = repository.find_contact(conn, tenant_id, email)
    if existing:
        return str(existing["id"])
    created = repository.insert_contact(conn, tenant_id, {
        "email": email,
        "first_name": (buyer.first_name or "").strip(),
        "last_name": (buyer.last_name or "").strip(),
        "phone": buyer.phone,
        "company": buyer.company,
    })
    if created:
        return str(created["id"])
    # Création concurrente pour le même email: relire la ligne gagnante
    existing = repository.find_contact(conn, tenant_id, email)
    if not existing:
        raise RuntimeError("contact resolution failed")
    return str(existing["id"])

def price_lines(
    items: List[CheckoutItemIn],
    products: Dict[str, Product],
    currency: str,
    rate: Decimal,
    policy: str,
) -> List[OrderLine]:
    lines: List[OrderLine] = []
    for item in items:
        product = products[item.product_id]
        expected = product.display_price(currency, rate)
        price = expected
        if item.display_price is not None:
            if policy == "trust":
                price = to_decimal(item.display_price)
            elif abs(to_decimal(item.display_price) - expected) > PRICE_TOLERANCE:
                logger.warning(
                    "orders.price_mismatch product=%s currency=%s client=%s expected=%s",
                    product.id, currency, item.display_price, expected,
                )
                raise ValidationFailed(PRICE_CHANGED, code="price_mismatch")
        lines.append(OrderLine(
            product_id=product.id,
            product_name=product.name,
            price=price,
            quantity=item.quantity,
            billing_cycle=product.billing_cycle,
        ))
    return lines

def resolve_total(display_total: Optional[Decimal], computed: Decimal, policy: str) -> Decimal:
    """Total de la commande: total explicite du client s'il est fourni (selon la politique), sinon le calcul."""
    if display_total is None:
        return computed
    if policy == "trust":
        return to_decimal(display_total)
    if abs(to_decimal(display_total) - computed) > PRICE_TOLERANCE:
        logger.warning("orders.total_mismatch client=%s expected=%s", display_total, computed)
        raise ValidationFailed(PRICE_CHANGED, code="price_mismatch")
    return computed

def create_order(
    req: CheckoutRequest,
    *,
    tenant_id: Optional[str] = None,
    policy: Optional[str] = None,
) -> CreatedOrder:
    """
    Crée une commande « pending » (financier pending, exécution fulfilled, moyen de paiement pending).
    - Échec de validation ou produit introuvable: rien n'est écrit (rollback)
    - Toute autre erreur: rollback puis OrderCreationFailed
    """
    tenant_id = tenant_id or config.TENANT_ID
    policy = policy or config.PRICE_POLICY
    buyer, ids = validate_request(req)
    if not all(is_uuid(i) for i in ids):
        raise ProductsNotFound()
    currency = (req.currency or config.REFERENCE_CURRENCY).upper()
    rate = rates.get_rate(tenant_id, currency)

    try:
        with db.transaction() as conn:
            contact_id = resolve_contact(conn, tenant_id, buyer)

            rows = repository.fetch_active_products(conn, tenant_id, ids)
            if len(rows) != len(ids):
                raise ProductsNotFound()
            products = {str(r["id"]): Product.from_row(r) for r in rows}

            lines = price_lines(req.items, products, currency, rate, policy)
            computed = sum((line.subtotal for line in lines), Decimal("0"))
            total = resolve_total(req.display_total, computed, policy)
            has_subscriptions = any(line.billing_cycle is not None for line in lines)

            order_number = repository.allocate_order_number(conn, tenant_id)
            row = repository.insert_order(conn, {
                "customer_id": tenant_id,
                "contact_id": contact_id,
                "order_number": order_number,
                "subtotal": total,
                "total_amount": total,
                "currency": currency,
                "financial_status": FINANCIAL_PENDING,
                "fulfillment_status": FULFILLMENT_FULFILLED,
                "customer_email": buyer.email.strip(),
                "customer_phone": buyer.phone,
                "customer_name": buyer.full_name,
                "payment_method": PAYMENT_METHOD_PENDING,
                "metadata": {
                    "source": config.ORDER_ORIGIN,
                    "country": buyer.country,
                    "company": buyer.company,
                    "awaitingPayment": True,
                },
            })
            order_id = str(row["id"])
            for line in lines:
                repository.insert_order_item(conn, order_id, {
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "price": line.price,
                    "quantity": line.quantity,
                    "subtotal": line.subtotal,
                    "total_amount": line.subtotal,
                    "billing_cycle": line.billing_cycle,
                })
    except CheckoutError:
        raise
    except Exception:
        logger.exception("orders.create_order failed email=%s items=%s", buyer.email, len(ids))
        raise OrderCreationFailed()

    created = CreatedOrder(
        order_id=order_id,
        order_number=str(row["order_number"]),
        total=total,
        currency=currency,
        status=FINANCIAL_PENDING,
        has_subscriptions=has_subscriptions,
        lines=lines,
    )
    logger.info(
        "orders.created order_id=%s number=%s total=%s %s subscriptions=%s",
        created.order_id, created.order_number, created.total, currency, has_subscriptions,
    )
    notifications.send_notification("order.created", {
        "order_id": created.order_id,
        "order_number": created.order_number,
        "total": str(created.total),
        "currency": currency,
        "customer_email": buyer.email.strip(),
        "has_subscriptions": has_subscriptions,
    })
    return created

def load_order(order_id: str) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Commande et lignes; OrderNotFound si l'id est inconnu."""
    if not is_uuid(order_id):
        raise OrderNotFound()
    with db.transaction() as conn:
        order = repository.get_order(conn, order_id)
        if not order:
            raise OrderNotFound()
        items = repository.list_order_items(conn, order_id)
    return order, items

def get_order_status(order_id: str) -> Dict[str, Any]:
    """Vue « page de succès » d'une commande."""
    order, items = load_order(order_id)
    metadata = order.get("metadata") or {}
    paid = order.get("financial_status") == FINANCIAL_PAID
    return {
        "order_id": str(order["id"]),
        "order_number": str(order["order_number"]),
        "financial_status": order.get("financial_status"),
        "total": float(to_decimal(order.get("total_amount"))),
        "currency": order.get("currency"),
        "has_subscriptions": any(i.get("billing_cycle") for i in items),
        "pending_payment": (not paid) and bool(metadata.get("awaitingPayment", True)),
    }

def mark_paid(order_id: str, *, payment_method: str, charge: Dict[str, Any]) -> bool:
    """
    Passe la commande à « paid » et enregistre le résultat du débit dans metadata.
    - Retourne False si la commande était déjà payée (aucune écriture)
    - Les erreurs d'accès aux données sont propagées (l'appelant décide: 500 ou réconciliation)
    """
    if not is_uuid(order_id):
        raise OrderNotFound()
    patch = {k: v for k, v in (charge or {}).items() if v is not None}
    patch["awaitingPayment"] = False
    patch["paid_at"] = datetime.now(timezone.utc).isoformat()
    with db.transaction() as conn:
        if not repository.get_order(conn, order_id):
            raise OrderNotFound()
        changed = repository.update_payment_status(conn, order_id, FINANCIAL_PAID, payment_method, patch)
    logger.info("orders.mark_paid order_id=%s changed=%s", order_id, changed)
    return changed
