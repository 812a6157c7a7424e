import os

# Avant l'import de l'app: pas d'initialisation Redis du rate limiter
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
import fakeredis

from storefront.app import app as fastapi_app
from storefront.payments import reconciliation
from storefront.pricing import rates
from tests.fakes import FakeDatabase, TENANT

ADMIN_TOKEN = "admin-test-token"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}

@pytest.fixture()
def fake_db(monkeypatch) -> FakeDatabase:
    return FakeDatabase().install(monkeypatch)

@pytest.fixture()
def gateway_configured(monkeypatch):
    monkeypatch.setattr("storefront.config.STRIPE_PUBLIC_KEY", "pk_test_123")
    monkeypatch.setattr("storefront.config.STRIPE_SECRET_KEY", "sk_test_123")

# Configuration déterministe et aucun accès réseau réel
@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    monkeypatch.setattr("storefront.config.TENANT_ID", TENANT)
    monkeypatch.setattr("storefront.config.PRICE_POLICY", "verify")
    monkeypatch.setattr("storefront.config.STRIPE_PUBLIC_KEY", "")
    monkeypatch.setattr("storefront.config.STRIPE_SECRET_KEY", "")
    monkeypatch.setattr("storefront.config.ADMIN_API_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr("storefront.config.PLATFORM_API_URL", "https://platform.test")
    monkeypatch.setattr("storefront.config.NOTIFY_WEBHOOK_URL", "")
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)

@pytest.fixture(autouse=True)
def mock_external_reads(monkeypatch):
    """
    Neutralise Supabase (catalogue, taux): table des taux vide => taux de secours.
    """
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.pricing.rates.fetch_exchange_rates", lambda tenant_id: {})
    rates.clear_cache()
    yield
    rates.clear_cache()

@pytest.fixture(autouse=True)
def recon_queue(monkeypatch):
    """File de réconciliation sur fakeredis (aucun Redis réel)."""
    queue = reconciliation.ReconciliationQueue(fakeredis.FakeRedis(decode_responses=True))
    monkeypatch.setattr("storefront.payments.reconciliation._queue", queue)
    return queue
