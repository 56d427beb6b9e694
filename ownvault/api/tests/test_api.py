"""Tests for ownvault.api.app: uses an in-memory store behind ASGITransport."""

import base64

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from ownvault import __version__, vault
from ownvault.api.app import app
from ownvault.api.auth import issue_token
from ownvault.vault.policy import PayloadPolicy

SECRET = "test-auth-secret"


@pytest.fixture(autouse=True)
def api_env(monkeypatch, store):
    monkeypatch.setenv("OWNVAULT_AUTH_SECRET", SECRET)
    vault.set_store(store)
    yield


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def auth(identity: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(identity, SECRET)}"}


class TestSecretRoutes:
    async def test_put_then_get(self, client):
        r = await client.put("/v1/secret", json={"value": "i'm a secret"}, headers=auth("alice"))
        assert r.status_code == 204

        r = await client.get("/v1/secret", headers=auth("alice"))
        assert r.status_code == 200
        assert r.json() == {"owner": "alice", "value": "i'm a secret", "encoding": "utf-8"}

    async def test_overwrite(self, client):
        await client.put("/v1/secret", json={"value": "v1"}, headers=auth("alice"))
        await client.put("/v1/secret", json={"value": "v2"}, headers=auth("alice"))
        r = await client.get("/v1/secret", headers=auth("alice"))
        assert r.json()["value"] == "v2"

    async def test_other_identity_not_found(self, client):
        await client.put("/v1/secret", json={"value": "secret"}, headers=auth("alice"))
        r = await client.get("/v1/secret", headers=auth("bob"))
        assert r.status_code == 404
        assert r.json() == {"error": "No secret stored for caller"}

    async def test_binary_roundtrip(self, client):
        raw = b"\x00\xff\xfe"
        body = {"value": base64.b64encode(raw).decode(), "encoding": "base64"}
        r = await client.put("/v1/secret", json=body, headers=auth("alice"))
        assert r.status_code == 204
        r = await client.get("/v1/secret", headers=auth("alice"))
        assert r.json()["encoding"] == "base64"
        assert base64.b64decode(r.json()["value"]) == raw

    async def test_bad_base64(self, client):
        body = {"value": "not base64!!", "encoding": "base64"}
        r = await client.put("/v1/secret", json=body, headers=auth("alice"))
        assert r.status_code == 422

    async def test_lone_surrogate_rejected(self, client, store, notifier):
        headers = {**auth("alice"), "Content-Type": "application/json"}
        r = await client.put("/v1/secret", content=b'{"value": "\\ud800"}', headers=headers)
        assert r.status_code == 422
        assert not store.has_secret("alice")
        assert not notifier.events

    async def test_policy_rejection(self, client, store):
        store.policy = PayloadPolicy(max_bytes=2)
        r = await client.put("/v1/secret", json={"value": "too long"}, headers=auth("alice"))
        assert r.status_code == 422
        assert not store.has_secret("alice")

    async def test_write_emits_notification(self, client, notifier):
        await client.put("/v1/secret", json={"value": "v1"}, headers=auth("alice"))
        assert [e.writer for e in notifier.events] == ["alice"]

    async def test_write_carries_correlation_id(self, client, notifier):
        headers = {**auth("alice"), "X-Correlation-Id": "trace-7"}
        await client.put("/v1/secret", json={"value": "v1"}, headers=headers)
        assert notifier.events[0].correlation_id == "trace-7"
        assert "correlation_id" not in notifier.events[0].model_dump()


class TestAuthentication:
    async def test_missing_token(self, client, notifier):
        r = await client.put("/v1/secret", json={"value": "x"})
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"
        assert not notifier.events

    async def test_forged_token(self, client, store):
        forged = {"Authorization": f"Bearer alice.{'0' * 64}"}
        r = await client.put("/v1/secret", json={"value": "x"}, headers=forged)
        assert r.status_code == 401
        assert not store.has_secret("alice")

    async def test_non_ascii_token_is_401(self, client):
        headers = {"Authorization": "Bearer alice.é".encode("utf-8")}
        r = await client.get("/v1/secret", headers=headers)
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid token"}

    async def test_read_unauthenticated_is_401_not_404(self, client):
        r = await client.get("/v1/secret")
        assert r.status_code == 401

    async def test_no_server_secret(self, client, monkeypatch):
        from ownvault.config import reset_config

        token_headers = auth("alice")
        monkeypatch.setenv("OWNVAULT_AUTH_SECRET", "")
        reset_config()
        r = await client.get("/v1/secret", headers=token_headers)
        assert r.status_code == 401


class TestHealth:
    async def test_health(self, client):
        await client.put("/v1/secret", json={"value": "x"}, headers=auth("alice"))
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "version": __version__}

    async def test_correlation_id(self, client):
        r = await client.get("/health", headers={"X-Correlation-Id": "trace-1"})
        assert r.headers["x-correlation-id"] == "trace-1"
        r = await client.get("/health")
        assert len(r.headers["x-correlation-id"]) == 32
