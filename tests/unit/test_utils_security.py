from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from storefront.utils.security import ADMIN_HEADER, require_admin_token


def _make_app():
    app = FastAPI()

    @app.get("/admin")
    def admin(_: str = Depends(require_admin_token)):
        return {"ok": True}

    return app


def test_bearer_token_accepted(admin_headers):
    client = TestClient(_make_app())
    assert client.get("/admin", headers=admin_headers).json() == {"ok": True}

def test_dedicated_header_accepted():
    client = TestClient(_make_app())
    assert client.get("/admin", headers={ADMIN_HEADER: "admin-test-token"}).status_code == 200

def test_missing_or_wrong_token_is_401():
    client = TestClient(_make_app())
    assert client.get("/admin").status_code == 401
    r = client.get("/admin", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid admin token"

def test_routes_closed_when_no_token_configured(monkeypatch, admin_headers):
    monkeypatch.setattr("storefront.config.ADMIN_API_TOKEN", "")
    client = TestClient(_make_app())
    assert client.get("/admin", headers=admin_headers).status_code == 403
