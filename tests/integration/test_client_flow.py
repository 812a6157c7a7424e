"""Parcours acheteur complet: session client (panier + tunnel) contre l'API réelle, via ASGITransport."""
import asyncio
from decimal import Decimal

import httpx
import pytest

from storefront.client import CardForm, CartStore, CheckoutApi, CheckoutWizard, MemoryStore
from storefront.client.wizard import GATEWAY_NOT_CONFIGURED, STEP_PAYMENT
from tests.fakes import FakeCapability, PRODUCT_ADDON, PRODUCT_CRM, default_products

CONTACT = {"first_name": "Dana", "last_name": "Levi", "email": "dana@example.com", "phone": "0501234567", "country": "IL"}


@pytest.fixture()
def catalog(monkeypatch):
    rows = [p for p in default_products() if p["status"] == "active"]
    monkeypatch.setattr("storefront.catalog.repository.fetch_active_products", lambda tenant_id: rows)

@pytest.fixture()
def charges(monkeypatch):
    calls = []

    def _create_charge(**kwargs):
        calls.append(kwargs)
        return {"payment_id": "ch_flow", "authorization_number": None, "document_id": None,
                "document_number": None, "document_url": None}

    monkeypatch.setattr("storefront.payments.stripe_client.create_charge", _create_charge)
    return calls


async def _session(app, capability, product_ids, currency="ILS"):
    api = CheckoutApi(client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver"))
    currency, rate, products = await api.list_products(currency)
    store = MemoryStore()
    cart = CartStore(store)
    cart.hydrate({p.id: p for p in products})
    for p in products:
        if p.id in product_ids:
            cart.add_item(p)
    wizard = CheckoutWizard(store, cart, api, currency=currency, rate=rate,
                            capability_factory=lambda gateway: capability, timeout=1)
    wizard.restore()
    for name, value in CONTACT.items():
        wizard.set_field(name, value)
    assert wizard.next() and wizard.next()
    return api, wizard


def test_one_time_purchase_end_to_end(app, fake_db, catalog, gateway_configured, charges):
    capability = FakeCapability()

    async def scenario():
        api, wizard = await _session(app, capability, {PRODUCT_CRM})
        assert await wizard.submit() is True
        assert wizard.step == STEP_PAYMENT
        success = await wizard.pay(CardForm(fields={
            "cardnumber": "4242424242424242", "expirationmonth": "12", "expirationyear": "2030",
            "cvv": "123", "citizenid": "123456782",
        }))
        status = await api.get_order(success.order_id)
        await api.aclose()
        return success, status

    success, status = asyncio.run(scenario())
    assert success.pending_payment is False
    assert success.order_number == "1000"
    assert status["financial_status"] == "paid"
    assert status["pending_payment"] is False
    assert charges[0]["amount"] == Decimal("369")
    assert charges[0]["currency"] == "ILS"
    assert charges[0]["token"] == "tok_test_123"

def test_purchase_without_gateway_ends_pending(app, fake_db, catalog, charges):
    async def scenario():
        api, wizard = await _session(app, FakeCapability(), {PRODUCT_CRM, PRODUCT_ADDON})
        assert await wizard.submit() is True
        status = await api.get_order(wizard.success.order_id)
        await api.aclose()
        return wizard, status

    wizard, status = asyncio.run(scenario())
    assert wizard.success.pending_payment is True
    assert wizard.success.message == GATEWAY_NOT_CONFIGURED
    assert status["pending_payment"] is True
    assert status["has_subscriptions"] is True
    assert status["total"] == 448.0
    assert charges == []

def test_israeli_card_requires_citizen_id(app, fake_db, catalog, gateway_configured, charges):
    async def scenario():
        api, wizard = await _session(app, FakeCapability(), {PRODUCT_CRM})
        await wizard.submit()
        result = await wizard.pay(CardForm(fields={"cardnumber": "4242424242424242", "expirationmonth": "12",
                                                   "expirationyear": "2030", "cvv": "123"}))
        await api.aclose()
        return wizard, result

    wizard, result = asyncio.run(scenario())
    assert result is None
    assert wizard.error == "ID number is required"
    assert charges == []
    assert fake_db.orders[0]["financial_status"] == "pending"

def test_declined_tokenization_charges_nothing_and_keeps_order_pending(app, fake_db, catalog, gateway_configured, charges):
    capability = FakeCapability({"status": 1, "userMessage": "Card declined by issuer", "technicalDetails": "card_declined"})

    async def scenario():
        api, wizard = await _session(app, capability, {PRODUCT_CRM})
        assert await wizard.submit() is True
        result = await wizard.pay(CardForm(fields={
            "cardnumber": "4000000000000002", "expirationmonth": "12", "expirationyear": "2030",
            "cvv": "123", "citizenid": "123456782",
        }))
        status = await api.get_order(wizard.order["order_id"])
        await api.aclose()
        return wizard, result, status

    wizard, result, status = asyncio.run(scenario())
    assert result is None
    assert capability.requests == 1
    assert wizard.error == "Card declined by issuer"
    assert wizard.step == STEP_PAYMENT
    assert charges == []
    assert status["financial_status"] == "pending"
    assert status["pending_payment"] is True
    assert fake_db.orders[0]["financial_status"] == "pending"
