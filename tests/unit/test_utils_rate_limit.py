# Import section
import time
import pytest
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from fastapi_limiter import FastAPILimiter
from storefront.utils.rate_limit import client_key, optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/checkout", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def checkout():
        return {"ok": True}

    @app.post("/charge", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def charge():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/checkout").status_code == 200
    assert client.post("/checkout").status_code == 200
    r3 = client.post("/checkout")
    assert r3.status_code == 429
    assert r3.json()["detail"] == "Too Many Requests"


def test_rate_limit_is_per_path_and_client_ip(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    buyer_a = {"X-Forwarded-For": "203.0.113.10"}
    buyer_b = {"X-Forwarded-For": "203.0.113.20, 10.0.0.1"}

    assert client.post("/checkout", headers=buyer_a).status_code == 200
    assert client.post("/checkout", headers=buyer_a).status_code == 200
    assert client.post("/checkout", headers=buyer_a).status_code == 429

    # autre chemin, même IP: compteur indépendant
    assert client.post("/charge", headers=buyer_a).status_code == 200
    # autre IP, même chemin
    assert client.post("/checkout", headers=buyer_b).status_code == 200


def test_client_key_uses_first_forwarded_address():
    app = FastAPI()

    @app.get("/key")
    def key(request: Request):
        return {"key": client_key(request)}

    client = TestClient(app)
    assert client.get("/key", headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"}).json()["key"] == "ip:198.51.100.7:/key"
    assert client.get("/key").json()["key"] == "ip:testclient:/key"


def test_rate_limit_resets_after_window_sleep(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=1))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/checkout").status_code == 200
    assert client.post("/checkout").status_code == 200
    assert client.post("/checkout").status_code == 429

    time.sleep(1.1)
    assert client.post("/checkout").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit():
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    app.state.rate_limit_enabled = False

    for _ in range(4):
        assert client.post("/checkout").status_code == 200


def test_unavailable_limiter_never_blocks():
    # Limiteur non initialisé (pas de Redis): la requête passe
    client = TestClient(_make_app(times=1, seconds=60))
    for _ in range(3):
        assert client.post("/checkout").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    app = _make_app()
    client = TestClient(app)
    app.state.rate_limit_enabled = True
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)

    info = client.get("/rl_info").json()
    assert info == {"enabled": True, "ready": False, "backend": None}

    monkeypatch.setattr(FastAPILimiter, "redis", object(), raising=False)
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}
