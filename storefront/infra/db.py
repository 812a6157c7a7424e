"""
Accès PostgreSQL transactionnel (psycopg 3 + pool).

- Le pool est ouvert à la première acquisition et fermé par le lifespan de l'application.
- Toute acquisition passe par un context manager: commit si le bloc se termine
  normalement, rollback sinon, et la connexion revient toujours au pool.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from storefront.config import DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


def get_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool(
            DATABASE_URL,
            min_size=DB_POOL_MIN_SIZE,
            max_size=DB_POOL_MAX_SIZE,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        logger.info("db.pool opened min=%s max=%s", DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE)
    return _pool


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None
        logger.info("db.pool closed")


@contextmanager
def transaction() -> Iterator[psycopg.Connection]:
    """
    Fournit une connexion du pool dans une transaction.
    - commit en sortie normale, rollback sur exception (propagée)
    """
    with get_pool().connection() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def ping() -> bool:
    """Vérifie que la base répond (utilisé par /health/db)."""
    try:
        with transaction() as conn:
            row = conn.execute("SELECT 1 AS ok").fetchone()
            return bool(row and row["ok"] == 1)
    except Exception:
        logger.exception("db.ping failed")
        return False
