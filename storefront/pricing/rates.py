"""
Table des taux de change du tenant (lecture Supabase, cache en mémoire).
"""
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Tuple

import storefront.infra.supabase_client as supabase_client
from storefront.config import EXCHANGE_RATE_TTL_SECONDS, FALLBACK_EXCHANGE_RATE, REFERENCE_CURRENCY

logger = logging.getLogger(__name__)

# {tenant_id: (expires_at, {currency: rate})}
_cache: Dict[str, Tuple[float, Dict[str, Decimal]]] = {}

# module storefront.pricing.rates
def fetch_exchange_rates(tenant_id: str) -> Dict[str, Decimal]:
    """
    Charge la table store.exchange_rates du tenant.
    - Retourne {} en cas d'erreur (le taux de secours s'applique alors)
    """
    try:
        res = (
            supabase_client.get_supabase()
            .schema("store")
            .table("exchange_rates")
            .select("currency, rate")
            .eq("customer_id", tenant_id)
            .execute()
        )
        rates: Dict[str, Decimal] = {}
        for row in res.data or []:
            try:
                rates[str(row.get("currency") or "").upper()] = Decimal(str(row.get("rate")))
            except (InvalidOperation, TypeError):
                logger.warning("pricing.rates invalid rate row=%s", row)
        return rates
    except Exception:
        logger.exception("pricing.rates.fetch_exchange_rates failed tenant=%s", tenant_id)
        return {}


def get_rates(tenant_id: str) -> Dict[str, Decimal]:
    now = time.monotonic()
    cached = _cache.get(tenant_id)
    if cached and cached[0] > now:
        return cached[1]
    rates = fetch_exchange_rates(tenant_id)
    _cache[tenant_id] = (now + EXCHANGE_RATE_TTL_SECONDS, rates)
    return rates


def get_rate(tenant_id: str, currency: str) -> Decimal:
    """Taux référence → currency; 1 pour la devise de référence, secours si absent."""
    currency = (currency or REFERENCE_CURRENCY).upper()
    if currency == REFERENCE_CURRENCY:
        return Decimal("1")
    rate = get_rates(tenant_id).get(currency)
    if rate is None or rate <= 0:
        return FALLBACK_EXCHANGE_RATE
    return rate


def clear_cache() -> None:
    _cache.clear()
