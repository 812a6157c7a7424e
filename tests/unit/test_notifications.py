import httpx

from storefront.notifications.service import send_notification


def test_without_webhook_only_logs(monkeypatch, caplog):
    def _post(*args, **kwargs):
        raise AssertionError("no HTTP call expected")

    monkeypatch.setattr("httpx.post", _post)
    caplog.set_level("INFO")
    assert send_notification("order.created", {"order_id": "o1"}) is True
    assert "order.created" in caplog.text

def test_webhook_receives_event(monkeypatch):
    sent = []

    def _post(url, json=None, timeout=None):
        sent.append((url, json))
        return httpx.Response(204, request=httpx.Request("POST", url))

    monkeypatch.setattr("storefront.config.NOTIFY_WEBHOOK_URL", "https://hooks.test/orders")
    monkeypatch.setattr("httpx.post", _post)
    assert send_notification("order.created", {"order_id": "o1"}) is True
    assert sent == [("https://hooks.test/orders", {"event": "order.created", "payload": {"order_id": "o1"}})]

def test_webhook_failure_does_not_raise(monkeypatch):
    def _post(url, json=None, timeout=None):
        return httpx.Response(500, request=httpx.Request("POST", url))

    monkeypatch.setattr("storefront.config.NOTIFY_WEBHOOK_URL", "https://hooks.test/orders")
    monkeypatch.setattr("httpx.post", _post)
    assert send_notification("order.created", {}) is False
