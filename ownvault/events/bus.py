"""
ownvault event bus: Redis Streams publishing for vault notifications.

Streams:
  ownvault:events:vault   vault.secret.written (metadata only)

Envelope format:
  {
    "id": "<stream message ID>",
    "timestamp": "ISO 8601",
    "type": "<event_type>",
    "source": "<producing service>",
    "actor": "<identity that caused the event>",
    "payload": "<JSON string>",
    "correlation_id": "<optional trace ID>"
  }

Usage:
    from ownvault.events.bus import publish, read_recent

    msg_id = publish("vault", "vault.secret.written", {"writer": "alice"}, actor="alice")
    for event in read_recent("vault", count=5):
        print(event["type"], event["actor"])

Publishing is fire-and-forget: failures are logged and never raised.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

# Feature flag: disable to run without Redis
EVENT_BUS_ENABLED = os.environ.get("EVENT_BUS_ENABLED", "true").lower() in (
    "true",
    "1",
    "yes",
)

STREAM_PREFIX = "ownvault:events:"

VALID_STREAMS = {"vault"}

# Max stream length per stream (circular buffer)
MAXLEN = int(os.environ.get("EVENT_BUS_MAXLEN", "10000"))

# Redis connection singleton
_redis_client = None


def _get_redis():
    """Get or create Redis connection. Returns None on failure."""
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.ping()
            return _redis_client
        except Exception:
            _redis_client = None

    try:
        import redis

        from ownvault.config import get_config

        redis_url = os.environ.get("REDIS_URL") or get_config().redis.url
        _redis_client = redis.Redis.from_url(redis_url, decode_responses=True)
        _redis_client.ping()
        return _redis_client
    except Exception as e:
        logger.warning("Event bus: Redis connection failed: %s", e)
        _redis_client = None
        return None


def set_redis_client(client):
    """Override Redis client for testing."""
    global _redis_client
    _redis_client = client


def reset_client():
    """Reset the Redis client singleton."""
    global _redis_client
    _redis_client = None


def _stream_key(stream: str) -> str:
    return f"{STREAM_PREFIX}{stream}"


def _make_envelope(
    event_type: str,
    payload: dict,
    *,
    source: str = "ownvault",
    actor: str = "",
    correlation_id: str | None = None,
) -> dict[str, str]:
    """Create a standardized event envelope for Redis Streams."""
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "type": event_type,
        "source": source,
        "actor": actor,
        "payload": json.dumps(payload, default=str),
        "correlation_id": correlation_id or "",
    }


def _parse_entry(msg_id: str, fields: dict) -> dict:
    return {
        "id": msg_id,
        "timestamp": fields.get("timestamp", ""),
        "type": fields.get("type", ""),
        "source": fields.get("source", ""),
        "actor": fields.get("actor", ""),
        "payload": json.loads(fields.get("payload", "{}")),
        "correlation_id": fields.get("correlation_id", ""),
    }


def publish(
    stream: str,
    event_type: str,
    payload: dict,
    *,
    source: str = "ownvault",
    actor: str = "",
    correlation_id: str | None = None,
) -> str | None:
    """Publish an event to a Redis Stream.

    Args:
        stream: Stream name (vault)
        event_type: Event type string (e.g., "vault.secret.written")
        payload: Event payload dict
        source: Producing service name
        actor: Identity that caused the event
        correlation_id: Optional trace ID for correlation

    Returns:
        Stream message ID on success, None on failure.
    """
    if not EVENT_BUS_ENABLED:
        return None

    if stream not in VALID_STREAMS:
        logger.warning(
            "Event bus: stream '%s' not in VALID_STREAMS %s, publishing anyway",
            stream,
            VALID_STREAMS,
        )

    try:
        r = _get_redis()
        if r is None:
            return None

        envelope = _make_envelope(
            event_type,
            payload,
            source=source,
            actor=actor,
            correlation_id=correlation_id,
        )
        msg_id: str | None = r.xadd(_stream_key(stream), envelope, maxlen=MAXLEN, approximate=True)
        return msg_id
    except Exception as e:
        logger.warning("Event bus publish failed: %s", e)
        return None


def stream_length(stream: str) -> int:
    """Get the number of entries in a stream. Returns 0 on error."""
    try:
        r = _get_redis()
        if r is None:
            return 0
        length: int = r.xlen(_stream_key(stream))
        return length
    except Exception as e:
        logger.warning("Event bus stream_length failed: %s", e)
        return 0


def read_recent(stream: str, count: int = 10) -> list[dict]:
    """Read the most recent N entries from a stream, newest first."""
    try:
        r = _get_redis()
        if r is None:
            return []
        entries = r.xrevrange(_stream_key(stream), count=count)
        return [_parse_entry(msg_id, fields) for msg_id, fields in entries]
    except Exception as e:
        logger.warning("Event bus read_recent failed: %s", e)
        return []
