"""
PostgreSQL access for the postgres vault backend.

One ThreadedConnectionPool per process, sized by ``OWNVAULT_DB_POOL_MAX`` and
opened on first use. Each checkout is a single transaction: it commits when
the block exits cleanly and rolls back otherwise, so a failed upsert leaves
the previous record in place.

Usage:
    from ownvault.db import transaction

    with transaction() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT owner FROM vault_records")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg2
import psycopg2.pool

from ownvault.config import get_config

logger = logging.getLogger(__name__)

_pool: psycopg2.pool.ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _open_pool() -> psycopg2.pool.ThreadedConnectionPool:
    cfg = get_config().db
    logger.info(
        "Opening vault database pool: %s:%s/%s (max=%d)",
        cfg.host or "local socket",
        cfg.port,
        cfg.name,
        cfg.pool_max,
    )
    try:
        return psycopg2.pool.ThreadedConnectionPool(1, cfg.pool_max, **cfg.dict)
    except psycopg2.OperationalError as e:
        raise ConnectionError(
            f"Vault database {cfg.name} unreachable: {e}. Check the OWNVAULT_DB_* settings."
        ) from e


def _current_pool() -> psycopg2.pool.ThreadedConnectionPool:
    global _pool
    with _pool_lock:
        if _pool is None or _pool.closed:
            _pool = _open_pool()
        return _pool


@contextmanager
def transaction() -> Iterator[psycopg2.extensions.connection]:
    """Check out a pooled connection for one transaction."""
    pool = _current_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
