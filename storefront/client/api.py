"""
Client HTTP asynchrone de l'API de la boutique (httpx).
Utilisé par le contrôleur du tunnel de commande côté acheteur.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import httpx

from storefront.catalog.models import Product
from storefront.payments.gateway import GatewayConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CheckoutApi:
    def __init__(self, base_url: str = "", *, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            r = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("api.%s %s unreachable: %s", method, path, e)
            raise ApiError("Network error. Please check your connection and try again.")
        try:
            body = r.json()
        except ValueError:
            body = {}
        if r.status_code >= 400:
            message = (body or {}).get("error") or (body or {}).get("detail") or f"Request failed ({r.status_code})"
            raise ApiError(str(message), r.status_code)
        return body or {}

    async def list_products(self, currency: Optional[str] = None) -> Tuple[str, Decimal, List[Product]]:
        params = {"currency": currency} if currency else None
        body = await self._request("GET", "/api/v1/products", params=params)
        products = [Product.from_row(p) for p in body.get("products") or []]
        return body.get("currency") or (currency or ""), Decimal(str(body.get("rate") or 1)), products

    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/checkout", json=payload)

    async def get_gateway_config(self) -> GatewayConfig:
        return GatewayConfig.from_dict(await self._request("GET", "/api/v1/payments/config"))

    async def charge(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/payments/charge", json=payload)

    async def complete_subscription(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/v1/payments/subscription", json=payload)

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/v1/orders/{order_id}")
