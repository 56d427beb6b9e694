"""Vault error kinds."""

from __future__ import annotations


class VaultError(Exception):
    """Base exception for the vault."""


class UnauthenticatedError(VaultError):
    """The calling environment could not establish an identity for the caller.

    Raised before the store is touched; the store itself never raises it.
    """


class SecretNotFoundError(VaultError):
    """No record exists for the calling identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"No secret stored for identity '{identity}'")
        self.identity = identity


class PayloadRejectedError(VaultError):
    """The configured payload policy refused a write."""
