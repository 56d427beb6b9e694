"""
Schema bootstrap for the postgres backend.

The backend needs one table, ``vault_records`` (see ``vault_records.sql``).
``ensure_schema`` creates it when it is missing; ``schema_ready`` reports
whether it exists.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ownvault.db.connection import transaction

logger = logging.getLogger(__name__)

TABLE = "vault_records"
SCHEMA_FILE = Path(__file__).with_name("vault_records.sql")


def schema_sql() -> str:
    return SCHEMA_FILE.read_text()


def _table_exists(cur) -> bool:
    cur.execute("SELECT to_regclass(%s)", (f"public.{TABLE}",))
    row = cur.fetchone()
    return bool(row and row[0])


def schema_ready() -> bool:
    with transaction() as conn:
        with conn.cursor() as cur:
            return _table_exists(cur)


def ensure_schema() -> bool:
    """Create ``vault_records`` if it does not exist. Returns True if created."""
    with transaction() as conn:
        with conn.cursor() as cur:
            if _table_exists(cur):
                logger.debug("Table %s already present", TABLE)
                return False
            cur.execute(schema_sql())
    logger.info("Created table %s", TABLE)
    return True
