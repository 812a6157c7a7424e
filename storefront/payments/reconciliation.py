"""
File de réconciliation (Redis) des mises à jour de commande échouées après un débit réussi.

Chaque entrée JSON: {order_id, payment_method, charge, attempts, last_error, enqueued_at}.
Les opérateurs consultent la file et relancent l'application des mises à jour.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import redis

from storefront.infra.redis_client import get_redis

logger = logging.getLogger(__name__)

QUEUE_KEY = "reconciliation:order-status"

class ReconciliationQueue:
    def __init__(self, client: Optional[redis.Redis] = None, key: str = QUEUE_KEY):
        self._client = client
        self.key = key

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis()
        return self._client

    def enqueue(self, order_id: str, payment_method: str, charge: Dict[str, Any], error: str, attempts: int = 0) -> bool:
        entry = {
            "order_id": order_id,
            "payment_method": payment_method,
            "charge": charge,
            "attempts": attempts,
            "last_error": error,
            "enqueued_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.client.rpush(self.key, json.dumps(entry))
            logger.warning("reconciliation.enqueued order_id=%s error=%s", order_id, error)
            return True
        except Exception:
            logger.critical(
                "reconciliation.enqueue FAILED order_id=%s charge=%s error=%s: manual action required",
                order_id, charge, error, exc_info=True,
            )
            return False

    def pending(self, limit: int = 100) -> List[Dict[str, Any]]:
        raw = self.client.lrange(self.key, 0, max(limit, 1) - 1)
        return [json.loads(r) for r in raw]

    def size(self) -> int:
        return int(self.client.llen(self.key))

    def retry(self, apply: Callable[[Dict[str, Any]], None]) -> Dict[str, int]:
        """
        Rejoue chaque entrée présente au moment de l'appel.
        - succès: l'entrée est retirée
        - échec: l'entrée est remise en fin de file avec attempts + 1
        """
        stats = {"retried": 0, "succeeded": 0, "failed": 0}
        for _ in range(self.size()):
            raw = self.client.lpop(self.key)
            if raw is None:
                break
            entry = json.loads(raw)
            stats["retried"] += 1
            try:
                apply(entry)
                stats["succeeded"] += 1
            except Exception as e:
                logger.exception("reconciliation.retry failed order_id=%s", entry.get("order_id"))
                stats["failed"] += 1
                self.enqueue(
                    entry["order_id"],
                    entry.get("payment_method") or "",
                    entry.get("charge") or {},
                    str(e),
                    attempts=int(entry.get("attempts") or 0) + 1,
                )
        return stats

_queue: Optional[ReconciliationQueue] = None

def get_queue() -> ReconciliationQueue:
    global _queue
    if _queue is None:
        _queue = ReconciliationQueue()
    return _queue
