"""Payload validation policy for writes.

The default policy accepts every payload, empty or large. Limits are opt-in
through ``OWNVAULT_MAX_PAYLOAD_BYTES`` and ``OWNVAULT_ALLOW_EMPTY``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ownvault.config import PayloadConfig
from ownvault.vault.errors import PayloadRejectedError


@dataclass(frozen=True)
class PayloadPolicy:
    max_bytes: int | None = None
    allow_empty: bool = True

    @classmethod
    def from_config(cls, cfg: PayloadConfig) -> PayloadPolicy:
        return cls(max_bytes=cfg.max_bytes, allow_empty=cfg.allow_empty)

    def check(self, payload: bytes) -> None:
        """Raise PayloadRejectedError if the payload violates the policy."""
        if not payload and not self.allow_empty:
            raise PayloadRejectedError("Empty payloads are not accepted")
        if self.max_bytes is not None and len(payload) > self.max_bytes:
            raise PayloadRejectedError(
                f"Payload of {len(payload)} bytes exceeds limit of {self.max_bytes}"
            )


ACCEPT_ALL = PayloadPolicy()
