"""
Root-level shared test fixtures.

Inherited by every test suite under the repo root.
"""

from __future__ import annotations

import pytest

from ownvault import vault
from ownvault.config import reset_config
from ownvault.events.bus import reset_client
from ownvault.events.notifier import CollectingNotifier
from ownvault.vault.backends import MemoryBackend
from ownvault.vault.store import VaultStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove ownvault env vars that leak between tests and reset singletons."""
    for key in [
        "OWNVAULT_WORKSPACE",
        "OWNVAULT_BACKEND",
        "OWNVAULT_SNAPSHOT_DIR",
        "OWNVAULT_DB_HOST",
        "OWNVAULT_DB_PORT",
        "OWNVAULT_DB_NAME",
        "OWNVAULT_DB_USER",
        "OWNVAULT_DB_PASSWORD",
        "OWNVAULT_DB_POOL_MAX",
        "OWNVAULT_AUTH_SECRET",
        "OWNVAULT_MAX_PAYLOAD_BYTES",
        "OWNVAULT_ALLOW_EMPTY",
        "OWNVAULT_API_PORT",
        "REDIS_URL",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    reset_client()
    vault.set_store(None)
    yield
    reset_config()
    reset_client()
    vault.set_store(None)


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def store(notifier):
    """In-memory store with a collecting notifier."""
    return VaultStore(MemoryBackend(), notifier)
