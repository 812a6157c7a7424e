import asyncio
import json

import httpx
import pytest

from storefront.client.api import ApiError, CheckoutApi
from storefront.client.preferences import load_language, preferred_currency, save_language
from storefront.client.storage import MemoryStore


def _api(handler):
    return CheckoutApi(client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://shop.test"))


def test_list_products_parses_catalog():
    def handler(request):
        assert request.url.params["currency"] == "ILS"
        return httpx.Response(200, json={"currency": "ILS", "rate": 3.7, "products": [
            {"id": "p1", "name": "CRM Module", "price": 100.0, "prices": {}, "billing_cycle": None},
        ]})

    currency, rate, products = asyncio.run(_api(handler).list_products("ILS"))
    assert currency == "ILS"
    assert str(rate) == "3.7"
    assert products[0].id == "p1"

def test_error_body_becomes_api_error():
    def handler(request):
        return httpx.Response(402, json={"success": False, "error": "Your card was declined."})

    with pytest.raises(ApiError) as exc:
        asyncio.run(_api(handler).charge({"order_id": "o1", "token": "t"}))
    assert exc.value.message == "Your card was declined."
    assert exc.value.status_code == 402

def test_network_error_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ApiError) as exc:
        asyncio.run(_api(handler).create_order({}))
    assert exc.value.status_code == 0

def test_gateway_config_and_payload():
    seen = {}

    def handler(request):
        if request.url.path == "/api/v1/payments/config":
            return httpx.Response(200, json={"enabled": True, "companyId": "t1", "apiPublicKey": "pk_test_1", "isTest": True})
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    api = _api(handler)
    gateway = asyncio.run(api.get_gateway_config())
    assert gateway.enabled and gateway.public_key == "pk_test_1" and gateway.is_test
    asyncio.run(api.complete_subscription({"order_id": "o1", "token": "t"}))
    assert seen["body"] == {"order_id": "o1", "token": "t"}

def test_language_preference():
    store = MemoryStore()
    assert load_language(store, "he-IL,he;q=0.9") == "he"
    assert preferred_currency(store, "en-US") == "USD"
    assert save_language(store, "fr") is False
    assert save_language(store, "he") is True
    assert preferred_currency(store, "en-US") == "ILS"
