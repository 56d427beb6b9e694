"""
ownvault vault: one secret per identity, readable and writable only by that identity.

Public API:
    vault.set(caller, payload)   -> upsert the caller's secret, emit vault.secret.written
    vault.get(caller)            -> the caller's secret (bytes) or SecretNotFoundError
    vault.get_store()            -> the configured VaultStore
"""

from __future__ import annotations

import threading

from ownvault.vault.errors import (
    PayloadRejectedError,
    SecretNotFoundError,
    UnauthenticatedError,
    VaultError,
)
from ownvault.vault.models import Identity, SecretRecord, SecretWritten
from ownvault.vault.store import VaultStore

_store: VaultStore | None = None
_store_lock = threading.Lock()


def build_store() -> VaultStore:
    """Build a VaultStore from the current configuration."""
    from ownvault.config import get_config
    from ownvault.events.notifier import StreamNotifier
    from ownvault.vault.backends import MemoryBackend, PostgresBackend
    from ownvault.vault.policy import PayloadPolicy

    cfg = get_config()
    backend: MemoryBackend | PostgresBackend
    if cfg.backend == "postgres":
        backend = PostgresBackend()
    else:
        backend = MemoryBackend(cfg.snapshot_dir)
    return VaultStore(backend, StreamNotifier(), PayloadPolicy.from_config(cfg.payload))


def get_store() -> VaultStore:
    """Get or create the process-wide store."""
    global _store
    if _store is not None:
        return _store
    with _store_lock:
        if _store is None:
            _store = build_store()
        return _store


def set_store(store: VaultStore | None) -> None:
    """Override the process-wide store (for testing)."""
    global _store
    _store = store


def set(caller: Identity, payload: bytes | str) -> None:
    """Create or overwrite the caller's own secret."""
    get_store().set_secret(caller, payload)


def get(caller: Identity) -> bytes:
    """Return the caller's own secret."""
    return get_store().get_secret(caller)


__all__ = [
    "Identity",
    "PayloadRejectedError",
    "SecretNotFoundError",
    "SecretRecord",
    "SecretWritten",
    "UnauthenticatedError",
    "VaultError",
    "VaultStore",
    "build_store",
    "get",
    "get_store",
    "set",
    "set_store",
]
