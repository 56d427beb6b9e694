"""
Vault backends: persistence for the identity -> record mapping.

MemoryBackend keeps records in a dict with an optional per-owner JSON snapshot.
PostgresBackend stores them in the ``vault_records`` table (psycopg2, same
pooled connection as the rest of ownvault).

Both guarantee that ``upsert`` has durably committed before it returns.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from ownvault.vault.models import Identity, SecretRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class SecretBackend(Protocol):
    """Storage contract used by VaultStore."""

    def upsert(self, owner: Identity, value: bytes) -> bool:
        """Create or replace the record for ``owner``. Returns True if it was created."""
        ...

    def fetch(self, owner: Identity) -> SecretRecord | None:
        """Return the record for ``owner`` or None."""
        ...

    def count(self) -> int: ...

    def owners(self) -> list[Identity]: ...


class MemoryBackend:
    """In-memory mapping, optionally persisted to a snapshot directory.

    Each owner's record lives in its own JSON file, named by the SHA-256 of
    the identity, so writes for different owners touch different files and
    never wait on each other. Writes for the same owner must be serialized by
    the caller (VaultStore holds a per-identity lock around ``upsert``).
    """

    def __init__(self, snapshot_dir: Path | str | None = None) -> None:
        self._records: dict[Identity, SecretRecord] = {}
        self._snapshot_dir = Path(snapshot_dir) if snapshot_dir else None
        if self._snapshot_dir is not None and self._snapshot_dir.is_dir():
            self._records = _load_snapshot(self._snapshot_dir)
            logger.info(
                "Loaded %d vault records from %s", len(self._records), self._snapshot_dir
            )

    def upsert(self, owner: Identity, value: bytes) -> bool:
        now = datetime.now(UTC)
        existing = self._records.get(owner)
        created = existing is None
        record = SecretRecord(
            owner=owner,
            value=value,
            created_at=now if existing is None else existing.created_at,
            updated_at=now,
        )
        if self._snapshot_dir is not None:
            # Prior state stays in place if the snapshot write fails.
            self._persist(record)
        self._records[owner] = record
        return created

    def _persist(self, record: SecretRecord) -> None:
        _write_record(self._snapshot_dir / record_filename(record.owner), record)

    def fetch(self, owner: Identity) -> SecretRecord | None:
        return self._records.get(owner)

    def count(self) -> int:
        return len(self._records)

    def owners(self) -> list[Identity]:
        return sorted(self._records)


def record_filename(owner: Identity) -> str:
    digest = hashlib.sha256(owner.encode("utf-8", "surrogatepass")).hexdigest()
    return f"{digest}.json"


def _load_snapshot(directory: Path) -> dict[Identity, SecretRecord]:
    records: dict[Identity, SecretRecord] = {}
    for path in sorted(directory.glob("*.json")):
        row = json.loads(path.read_text())
        records[row["owner"]] = SecretRecord(
            owner=row["owner"],
            value=base64.b64decode(row["value"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
    return records


def _write_record(path: Path, record: SecretRecord) -> None:
    """Write one record atomically (temp file + rename), chmod 600."""
    payload = {
        "version": 1,
        "owner": record.owner,
        "value": base64.b64encode(record.value).decode("ascii"),
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as fh:
            json.dump(payload, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class PostgresBackend:
    """Records in the ``vault_records`` table, one row per owner."""

    def upsert(self, owner: Identity, value: bytes) -> bool:
        from ownvault.db.connection import transaction

        now = datetime.now(UTC)
        with transaction() as conn:
            with conn.cursor() as cur:
                # xmax = 0 only for a freshly inserted row
                cur.execute(
                    """
                    INSERT INTO vault_records (owner, value, created_at, updated_at)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (owner)
                    DO UPDATE SET value = EXCLUDED.value,
                                  updated_at = EXCLUDED.updated_at
                    RETURNING (xmax = 0) AS inserted
                    """,
                    (owner, value, now, now),
                )
                row = cur.fetchone()
        return bool(row and row[0])

    def fetch(self, owner: Identity) -> SecretRecord | None:
        from ownvault.db.connection import transaction

        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT owner, value, created_at, updated_at FROM vault_records WHERE owner = %s",
                    (owner,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return SecretRecord(
            owner=row[0],
            value=bytes(row[1]),
            created_at=row[2],
            updated_at=row[3],
        )

    def count(self) -> int:
        from ownvault.db.connection import transaction

        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM vault_records")
                row = cur.fetchone()
        return row[0] if row else 0

    def owners(self) -> list[Identity]:
        from ownvault.db.connection import transaction

        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT owner FROM vault_records ORDER BY owner")
                return [row[0] for row in cur.fetchall()]
