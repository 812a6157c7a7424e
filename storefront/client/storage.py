"""
Stockage durable scopé à une session acheteur (équivalent du stockage navigateur).

Chaque valeur est enveloppée {"v": version, "data": ...}; une enveloppe d'une autre
version ou illisible est traitée comme absente. Les erreurs du support (Redis, JSON)
sont journalisées et ne remontent jamais à l'appelant.
"""
import json
import logging
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Clés persistées
CART_KEY = "upgradeshop-cart"
FORM_DATA_KEY = "checkout-form-data"
CURRENT_STEP_KEY = "checkout-current-step"
LANGUAGE_KEY = "upgradeshop-language"


class ScopedStore:
    """Base: enveloppe versionnée et tolérance aux pannes; les sous-classes fournissent les accès bruts."""

    def __init__(self, version: int = SCHEMA_VERSION):
        self.version = version

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, raw: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def load(self, key: str, default: Any = None) -> Any:
        try:
            raw = self._read(key)
            if raw is None:
                return default
            envelope = json.loads(raw)
        except (redis.RedisError, ValueError, TypeError):
            logger.exception("storage.load failed key=%s", key)
            return default
        if not isinstance(envelope, dict) or envelope.get("v") != self.version:
            logger.info("storage.load discarded key=%s (schema version mismatch)", key)
            return default
        return envelope.get("data", default)

    def save(self, key: str, value: Any) -> bool:
        try:
            self._write(key, json.dumps({"v": self.version, "data": value}))
            return True
        except (redis.RedisError, ValueError, TypeError):
            logger.exception("storage.save failed key=%s", key)
            return False

    def remove(self, key: str) -> None:
        try:
            self._delete(key)
        except redis.RedisError:
            logger.exception("storage.remove failed key=%s", key)


class MemoryStore(ScopedStore):
    def __init__(self, version: int = SCHEMA_VERSION, data: Optional[Dict[str, str]] = None):
        super().__init__(version)
        self.data: Dict[str, str] = data if data is not None else {}

    def _read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def _write(self, key: str, raw: str) -> None:
        self.data[key] = raw

    def _delete(self, key: str) -> None:
        self.data.pop(key, None)


class RedisStore(ScopedStore):
    """Stockage Redis, une clé par (session, nom): 'session:<scope>:<nom>'."""

    def __init__(self, client: redis.Redis, scope: str, *, ttl_seconds: int = 60 * 60 * 24 * 30, version: int = SCHEMA_VERSION):
        super().__init__(version)
        self.client = client
        self.scope = scope
        self.ttl_seconds = ttl_seconds

    def _key(self, key: str) -> str:
        return f"session:{self.scope}:{key}"

    def _read(self, key: str) -> Optional[str]:
        return self.client.get(self._key(key))

    def _write(self, key: str, raw: str) -> None:
        self.client.set(self._key(key), raw, ex=self.ttl_seconds)

    def _delete(self, key: str) -> None:
        self.client.delete(self._key(key))
