"""
ownvault API: FastAPI service exposing the caller's own secret.

Endpoints:
  PUT /v1/secret   upsert the caller's secret (204)
  GET /v1/secret   read the caller's secret (200, 404 if absent)
  GET /health      liveness + version

The caller is identified only by the bearer token; no route accepts an
identity parameter.

Start:
  ownvault serve
  # or
  uvicorn ownvault.api.app:app --host 127.0.0.1 --port 9120
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Literal

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ownvault import __version__, vault
from ownvault.api.auth import identity_from_header
from ownvault.api.middleware import CorrelationMiddleware
from ownvault.config import get_config
from ownvault.vault.errors import (
    PayloadRejectedError,
    SecretNotFoundError,
    UnauthenticatedError,
)
from ownvault.vault.models import Identity

logger = logging.getLogger(__name__)

app = FastAPI(
    title="ownvault",
    description="Per-identity secret store.",
    version=__version__,
)
app.add_middleware(CorrelationMiddleware)


# ─── Models ──────────────────────────────────────────────────────────


class SecretWrite(BaseModel):
    value: str
    encoding: Literal["utf-8", "base64"] = "utf-8"


class SecretRead(BaseModel):
    owner: str
    value: str
    encoding: Literal["utf-8", "base64"] = Field("utf-8", description="How value is encoded")


# ─── Error mapping ───────────────────────────────────────────────────


@app.exception_handler(UnauthenticatedError)
async def _unauthenticated(request: Request, exc: UnauthenticatedError) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(SecretNotFoundError)
async def _not_found(request: Request, exc: SecretNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "No secret stored for caller"})


@app.exception_handler(PayloadRejectedError)
async def _rejected(request: Request, exc: PayloadRejectedError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": str(exc)})


# ─── Dependencies ────────────────────────────────────────────────────


def caller_identity(authorization: str | None = Header(None)) -> Identity:
    """Resolve the authenticated caller from the Authorization header."""
    return identity_from_header(authorization, get_config().auth_secret)


# ─── Routes ──────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}


@app.put("/v1/secret", status_code=204)
def put_secret(
    body: SecretWrite, request: Request, caller: Identity = Depends(caller_identity)
) -> Response:
    if body.encoding == "base64":
        try:
            payload = base64.b64decode(body.value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise PayloadRejectedError(f"Invalid base64 value: {e}") from e
    else:
        try:
            payload = body.value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise PayloadRejectedError("Value is not valid UTF-8 text") from e
    correlation_id = getattr(request.state, "correlation_id", None)
    vault.get_store().set_secret(caller, payload, correlation_id=correlation_id)
    return Response(status_code=204)


@app.get("/v1/secret", response_model=SecretRead)
def get_secret(caller: Identity = Depends(caller_identity)) -> SecretRead:
    value = vault.get_store().get_secret(caller)
    try:
        return SecretRead(owner=caller, value=value.decode("utf-8"))
    except UnicodeDecodeError:
        return SecretRead(owner=caller, value=base64.b64encode(value).decode("ascii"), encoding="base64")
