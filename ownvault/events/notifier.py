"""
Notifiers deliver SecretWritten events to observers.

StreamNotifier publishes to the Redis ``vault`` stream; CollectingNotifier
keeps events in process and fans them out to listeners. Neither ever raises
into the caller: a notification failure must not undo a committed write.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ownvault.events import bus

if TYPE_CHECKING:
    from ownvault.vault.models import SecretWritten

logger = logging.getLogger(__name__)

VAULT_STREAM = "vault"

Listener = Callable[["SecretWritten"], None]


@runtime_checkable
class Notifier(Protocol):
    def notify(self, event: SecretWritten) -> None: ...


class StreamNotifier:
    """Publish write notifications to the Redis event bus."""

    def __init__(self, stream: str = VAULT_STREAM, source: str = "ownvault") -> None:
        self.stream = stream
        self.source = source

    def notify(self, event: SecretWritten) -> None:
        msg_id = bus.publish(
            self.stream,
            event.event_type,
            event.model_dump(mode="json"),
            source=self.source,
            actor=event.writer,
            correlation_id=event.correlation_id,
        )
        if msg_id is None:
            logger.debug("Write notification for %s not delivered to event bus", event.writer)


class CollectingNotifier:
    """Keep the most recent notifications in memory and forward them to registered listeners."""

    def __init__(self, keep: int = 1000) -> None:
        self.events: deque[SecretWritten] = deque(maxlen=keep)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def notify(self, event: SecretWritten) -> None:
        self.events.append(event)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error("Vault listener %r failed for %s: %s", listener, event.writer, e)
