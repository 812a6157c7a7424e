from typing import Optional
import redis
from storefront.config import REDIS_URL

_redis: Optional[redis.Redis] = None

def get_redis() -> redis.Redis:
    """
    Client Redis synchrone partagé (file de réconciliation).
    La connexion réelle n'est établie qu'au premier appel de commande.
    """
    global _redis
    if _redis is None:
        _redis = redis.from_url(REDIS_URL, encoding="utf-8", decode_responses=True)
    return _redis
