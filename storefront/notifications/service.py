"""Notifications sortantes (best-effort).
- Si NOTIFY_WEBHOOK_URL est défini: POST JSON {event, payload} via httpx.
- Sinon: simple trace dans les logs.
Une notification ne fait jamais échouer l'opération métier appelante.
"""
import logging
from typing import Any, Dict

import httpx

from storefront import config

logger = logging.getLogger(__name__)

# module storefront.notifications.service
def send_notification(event: str, payload: Dict[str, Any]) -> bool:
    url = config.NOTIFY_WEBHOOK_URL
    if not url:
        logger.info("notification event=%s payload=%s", event, payload)
        return True
    try:
        r = httpx.post(url, json={"event": event, "payload": payload}, timeout=5.0)
        r.raise_for_status()
        return True
    except httpx.HTTPError:
        logger.exception("notification failed event=%s", event)
        return False
