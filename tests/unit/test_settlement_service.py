from decimal import Decimal

import pytest

from storefront.errors import GatewayNotConfigured, OrderNotFound, PaymentDeclined, SubscriptionFailed, ValidationFailed
from storefront.orders import service as orders_service
from storefront.orders.models import CheckoutRequest
from storefront.payments import settlement
from storefront.payments.models import ChargeRequest, SubscriptionRequest
from storefront.payments.reconciliation import ReconciliationQueue
from tests.fakes import PRODUCT_ADDON, PRODUCT_CRM

BUYER = {"email": "dana@example.com", "first_name": "Dana", "last_name": "Levi", "phone": "0501234567"}
CHARGE_RESULT = {
    "payment_id": "ch_123",
    "authorization_number": "auth_1",
    "document_id": "txn_1",
    "document_number": "1001-2002",
    "document_url": "https://pay.stripe.com/receipts/ch_123",
}


def _order(*product_ids, currency="USD"):
    req = CheckoutRequest(buyer=BUYER, items=[{"product_id": p} for p in product_ids], currency=currency)
    return orders_service.create_order(req)

@pytest.fixture()
def charges(monkeypatch):
    calls = []

    def _create_charge(**kwargs):
        calls.append(kwargs)
        return dict(CHARGE_RESULT)

    monkeypatch.setattr("storefront.payments.stripe_client.create_charge", _create_charge)
    return calls


def test_one_time_order_is_charged_and_marked_paid(fake_db, gateway_configured, charges):
    created = _order(PRODUCT_CRM)
    result = settlement.settle_one_time(ChargeRequest(token="tok_1", order_id=created.order_id, attempt_id="a1"))

    assert result["success"] is True
    assert result["recorded"] is True
    assert result["payment_id"] == "ch_123"
    assert charges == [{
        "token": "tok_1",
        "amount": Decimal("100.00"),
        "currency": "USD",
        "order_id": created.order_id,
        "order_number": "1000",
        "idempotency_key": f"{created.order_id}:a1",
        "receipt_email": "dana@example.com",
    }]
    order = fake_db.orders[0]
    assert order["financial_status"] == "paid"
    assert order["payment_method"] == "credit_card"
    assert order["metadata"]["document_url"] == CHARGE_RESULT["document_url"]

def test_charged_amount_comes_from_the_order(fake_db, gateway_configured, charges):
    created = _order(PRODUCT_CRM, currency="ILS")
    settlement.settle_one_time(ChargeRequest(token="tok_1", order_id=created.order_id, amount=Decimal("1"), currency="USD"))
    assert charges[0]["amount"] == Decimal("369")
    assert charges[0]["currency"] == "ILS"

def test_already_paid_order_is_not_charged_again(fake_db, gateway_configured, charges):
    created = _order(PRODUCT_CRM)
    settlement.settle_one_time(ChargeRequest(token="tok_1", order_id=created.order_id))
    again = settlement.settle_one_time(ChargeRequest(token="tok_2", order_id=created.order_id))

    assert len(charges) == 1
    assert again["already_paid"] is True
    assert again["payment_id"] == "ch_123"

@pytest.mark.parametrize("token, order_id", [(None, "x"), ("tok", None), ("", "")])
def test_missing_fields(fake_db, gateway_configured, charges, token, order_id):
    with pytest.raises(ValidationFailed) as exc:
        settlement.settle_one_time(ChargeRequest(token=token, order_id=order_id))
    assert exc.value.message == "Missing required fields"
    assert charges == []

def test_unknown_order(fake_db, gateway_configured, charges):
    with pytest.raises(OrderNotFound):
        settlement.settle_one_time(ChargeRequest(token="tok", order_id="44444444-4444-4444-8444-444444444444"))

def test_gateway_not_configured(fake_db, charges):
    created = _order(PRODUCT_CRM)
    with pytest.raises(GatewayNotConfigured) as exc:
        settlement.settle_one_time(ChargeRequest(token="tok", order_id=created.order_id))
    assert exc.value.status_code == 503
    assert charges == []
    assert fake_db.orders[0]["financial_status"] == "pending"

def test_declined_card_leaves_order_pending(fake_db, gateway_configured, monkeypatch):
    def _declined(**kwargs):
        raise PaymentDeclined("Your card was declined.")

    monkeypatch.setattr("storefront.payments.stripe_client.create_charge", _declined)
    created = _order(PRODUCT_CRM)
    with pytest.raises(PaymentDeclined):
        settlement.settle_one_time(ChargeRequest(token="tok", order_id=created.order_id))
    assert fake_db.orders[0]["financial_status"] == "pending"

def test_paths_are_mutually_exclusive(fake_db, gateway_configured, charges):
    subscription_order = _order(PRODUCT_CRM, PRODUCT_ADDON)
    one_time_order = _order(PRODUCT_CRM)

    with pytest.raises(ValidationFailed) as exc:
        settlement.settle_one_time(ChargeRequest(token="tok", order_id=subscription_order.order_id))
    assert exc.value.code == "wrong_settlement_path"
    with pytest.raises(ValidationFailed):
        settlement.settle_subscription(SubscriptionRequest(token="tok", order_id=one_time_order.order_id))
    assert charges == []

def test_failed_order_update_after_charge_goes_to_reconciliation(fake_db, gateway_configured, charges, recon_queue):
    created = _order(PRODUCT_CRM)
    fake_db.fail_on.add("update_payment_status")

    result = settlement.settle_one_time(ChargeRequest(token="tok", order_id=created.order_id))

    assert result["success"] is True
    assert result["recorded"] is False
    entries = recon_queue.pending()
    assert len(entries) == 1
    assert entries[0]["order_id"] == created.order_id
    assert entries[0]["charge"]["payment_id"] == "ch_123"
    assert entries[0]["payment_method"] == "credit_card"

    fake_db.fail_on.clear()
    stats = recon_queue.retry(settlement.apply_reconciliation_entry)
    assert stats == {"retried": 1, "succeeded": 1, "failed": 0}
    assert fake_db.orders[0]["financial_status"] == "paid"
    assert recon_queue.size() == 0

def test_unreachable_reconciliation_store_still_reports_the_charge(fake_db, gateway_configured, charges, monkeypatch):
    def _bad_url():
        raise ValueError("Redis URL must specify one of the following schemes")

    monkeypatch.setattr("storefront.payments.reconciliation._queue", ReconciliationQueue())
    monkeypatch.setattr("storefront.payments.reconciliation.get_redis", _bad_url)
    created = _order(PRODUCT_CRM)
    fake_db.fail_on.add("update_payment_status")

    result = settlement.settle_one_time(ChargeRequest(token="tok", order_id=created.order_id))

    assert result["success"] is True
    assert result["recorded"] is False
    assert len(charges) == 1

def test_subscription_order_is_handed_to_platform(fake_db, monkeypatch, charges):
    calls = []

    def _complete(order_id, token, *, attempt_id=None):
        calls.append((order_id, token, attempt_id))
        return {"success": True, "subscriptionId": "sub_1"}

    monkeypatch.setattr("storefront.payments.platform_client.complete_subscription", _complete)
    created = _order(PRODUCT_CRM, PRODUCT_ADDON)
    result = settlement.settle_subscription(SubscriptionRequest(token="tok", order_id=created.order_id, attempt_id="a1"))

    assert result == {"success": True, "subscription_id": "sub_1"}
    assert calls == [(created.order_id, "tok", "a1")]
    assert charges == []
    # la plateforme est propriétaire de l'état de facturation
    assert fake_db.orders[0]["financial_status"] == "pending"

def test_subscription_failure_is_propagated(fake_db, monkeypatch):
    def _fail(order_id, token, *, attempt_id=None):
        raise SubscriptionFailed()

    monkeypatch.setattr("storefront.payments.platform_client.complete_subscription", _fail)
    created = _order(PRODUCT_ADDON)
    with pytest.raises(SubscriptionFailed) as exc:
        settlement.settle_subscription(SubscriptionRequest(token="tok", order_id=created.order_id))
    assert exc.value.status_code == 502
