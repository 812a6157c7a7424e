import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from storefront.config import TENANT_ID
from storefront.catalog import repository
from storefront.pricing import rates
from storefront.pricing.currency import format_price
from storefront.pricing.locale import LANGUAGES, currency_for_language, language_from_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/products", tags=["Catalog API"])

# module storefront.catalog.views
@router.get("")
def list_products(request: Request, currency: Optional[str] = None) -> Dict[str, Any]:
    """
    Catalogue actif avec prix d'affichage résolus.
    - currency: devise explicite; à défaut déduite de la langue (cookie puis Accept-Language)
    - Réponse: {currency, rate, products: [{..., display_price, formatted_price}]}
    """
    language = language_from_request(request)
    if not currency or currency.upper() not in {c.currency for c in LANGUAGES.values()}:
        currency = currency_for_language(language)
    currency = currency.upper()
    rate = rates.get_rate(TENANT_ID, currency)
    products = []
    for product in repository.list_active_products(TENANT_ID):
        price = product.display_price(currency, rate)
        period = "monthly" if product.billing_cycle == "monthly" else None
        products.append({
            **product.to_dict(),
            "display_price": float(price),
            "formatted_price": format_price(price, currency, period=period, language=language),
        })
    return {"currency": currency, "rate": float(rate), "products": products}
