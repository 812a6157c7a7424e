def test_health_root(client):
    assert client.get("/health").json() == {"ok": True}

def test_health_db(client, monkeypatch):
    monkeypatch.setattr("storefront.infra.db.ping", lambda: True)
    assert client.get("/health/db").json() == {"connect_ok": True}
    monkeypatch.setattr("storefront.infra.db.ping", lambda: False)
    r = client.get("/health/db")
    assert r.status_code == 503
    assert r.json() == {"connect_ok": False}

def test_health_rate_limit_disabled_in_tests(client):
    info = client.get("/health/rate-limit").json()
    assert info["enabled"] is False

def test_security_headers(client):
    r = client.get("/health")
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "https://js.stripe.com" in r.headers["Content-Security-Policy"]
    assert "Cache-Control" not in r.headers or "no-store" not in r.headers["Cache-Control"]
