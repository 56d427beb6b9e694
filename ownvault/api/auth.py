"""
Caller authentication for the HTTP API.

A token is ``<identity>.<hex HMAC-SHA256(server secret, identity)>``. The
server secret comes from ``OWNVAULT_AUTH_SECRET``; without one, every
request is rejected. Verification happens before the store is touched.
"""

from __future__ import annotations

import hashlib
import hmac

from ownvault.vault.errors import UnauthenticatedError
from ownvault.vault.models import Identity


def _sign(identity: Identity, secret: str) -> str:
    return hmac.new(secret.encode(), identity.encode("utf-8", "surrogatepass"), hashlib.sha256).hexdigest()


def issue_token(identity: Identity, secret: str) -> str:
    """Return a bearer token for ``identity``."""
    if not secret:
        raise ValueError("An auth secret is required to issue tokens (set OWNVAULT_AUTH_SECRET)")
    if not identity or "." in identity:
        raise ValueError(f"Invalid identity {identity!r}: must be non-empty and contain no '.'")
    return f"{identity}.{_sign(identity, secret)}"


def verify_token(token: str | None, secret: str) -> Identity:
    """Return the identity a token was issued for, or raise UnauthenticatedError."""
    if not secret:
        raise UnauthenticatedError("Authentication is not configured")
    if not token:
        raise UnauthenticatedError("Missing credentials")
    identity, sep, signature = token.rpartition(".")
    if not sep or not identity or not signature:
        raise UnauthenticatedError("Malformed token")
    expected = _sign(identity, secret).encode()
    if not hmac.compare_digest(expected, signature.encode("utf-8", "surrogatepass")):
        raise UnauthenticatedError("Invalid token")
    return identity


def identity_from_header(authorization: str | None, secret: str) -> Identity:
    """Parse an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise UnauthenticatedError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        raise UnauthenticatedError("Authorization scheme must be Bearer")
    return verify_token(token.strip(), secret)
