"""Vault data models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

Identity = str


def _now() -> datetime:
    return datetime.now(UTC)


class SecretRecord(BaseModel):
    """The one secret held by an identity.

    ``owner`` mirrors the storage key. Access decisions use the caller's
    identity, never this field.
    """

    model_config = ConfigDict(frozen=True)

    owner: Identity
    value: bytes = Field(repr=False)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class SecretWritten(BaseModel):
    """Notification emitted after a successful write. Carries metadata, never the value."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    writer: Identity
    created: bool = False
    timestamp: datetime = Field(default_factory=_now)
    # Request trace ID; travels in the bus envelope, not the payload.
    correlation_id: str | None = Field(None, exclude=True)

    @property
    def event_type(self) -> str:
        return "vault.secret.written"
