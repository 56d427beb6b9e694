"""
VaultStore: one secret per identity, readable and writable only by that identity.

Both operations are scoped to the caller's own identity. There is no
parameter that names another identity and no privileged identity that can
read other records.

Usage:
    store = VaultStore(MemoryBackend(), CollectingNotifier())
    store.set_secret("alice", b"i'm a secret")
    store.get_secret("alice")   # -> b"i'm a secret"
    store.get_secret("bob")     # raises SecretNotFoundError
"""

from __future__ import annotations

import logging
import threading

from ownvault.events.notifier import Notifier
from ownvault.vault.backends import SecretBackend
from ownvault.vault.errors import SecretNotFoundError
from ownvault.vault.models import Identity, SecretWritten
from ownvault.vault.policy import ACCEPT_ALL, PayloadPolicy

logger = logging.getLogger(__name__)

Payload = bytes | bytearray | memoryview | str


def _to_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(f"Secret payload must be bytes or str, got {type(payload).__name__}")


class VaultStore:
    """Per-identity secret store with change notifications."""

    def __init__(
        self,
        backend: SecretBackend,
        notifier: Notifier,
        policy: PayloadPolicy | None = None,
    ) -> None:
        self.backend = backend
        self.notifier = notifier
        self.policy = policy or ACCEPT_ALL
        self._locks: dict[Identity, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, identity: Identity) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.Lock()
            return lock

    def set_secret(
        self, caller: Identity, payload: Payload, *, correlation_id: str | None = None
    ) -> None:
        """Create or overwrite the caller's secret, then notify observers.

        The notification carries only the writer's identity and, for writes
        made on behalf of a traced request, its ``correlation_id``. A failed
        write leaves any previous record untouched and emits nothing.
        """
        value = _to_bytes(payload)
        self.policy.check(value)

        with self._lock_for(caller):
            created = self.backend.upsert(caller, value)

        if created:
            logger.info("Vault record created for %s", caller)
        else:
            logger.debug("Vault record updated for %s", caller)
        try:
            event = SecretWritten(writer=caller, created=created, correlation_id=correlation_id)
            self.notifier.notify(event)
        except Exception as e:
            logger.error("Failed to emit write notification for %s: %s", caller, e)

    def get_secret(self, caller: Identity) -> bytes:
        """Return the caller's own secret. Raises SecretNotFoundError if absent."""
        record = self.backend.fetch(caller)
        if record is None:
            raise SecretNotFoundError(caller)
        return bytes(record.value)

    def has_secret(self, caller: Identity) -> bool:
        return self.backend.fetch(caller) is not None
