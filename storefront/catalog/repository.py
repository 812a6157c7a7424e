"""
Accès aux données pour la feature 'catalog' (lecture Supabase).
"""
from typing import Dict, List
import logging
import storefront.infra.supabase_client as supabase_client
from storefront.catalog.models import Product

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
def fetch_active_products(tenant_id: str) -> List[dict]:
    """
    Produits actifs du tenant (schéma 'store', table 'products'), triés par position.
    - Retourne [] en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_supabase()
            .schema("store")
            .table("products")
            .select("id, name, slug, price, prices, billing_cycle, category")
            .eq("customer_id", tenant_id)
            .eq("status", "active")
            .order("position")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("catalog.repository.fetch_active_products failed tenant=%s", tenant_id)
        return []

def list_active_products(tenant_id: str) -> List[Product]:
    return [Product.from_row(r) for r in fetch_active_products(tenant_id) if r.get("id")]

def get_products_map(tenant_id: str) -> Dict[str, Product]:
    """Retourne un dict {id: Product} des produits actifs."""
    return {p.id: p for p in list_active_products(tenant_id)}
