"""Lifecycle event publishing.

Observers subscribe a callable; the lifecycle manager publishes one event
per successful issue/revoke/extend and nothing on failure.

With the SQL backend the manager publishes into DeferredEvents instead,
which holds events until the request's transaction commits.  A rolled
back request therefore never reaches observers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from kyc_registry.core.metrics import CREDENTIAL_EVENTS
from kyc_registry.models.events import CredentialEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[CredentialEvent], None]


class EventSink(Protocol):
    def publish(self, event: CredentialEvent) -> None: ...


class EventPublisher:
    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers.remove(handler)

    def publish(self, event: CredentialEvent) -> None:
        CREDENTIAL_EVENTS.labels(event=event.name).inc()
        logger.info(
            "Event %s %s",
            event.name,
            event,
            extra={"event": event.name, "credential_id": event.id},
        )
        for handler in list(self._handlers):
            # Handler failures never reach the caller or the other handlers.
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed on %s", handler, event.name)


class DeferredEvents:
    def __init__(self, target: EventSink) -> None:
        self._target = target
        self._pending: list[CredentialEvent] = []

    def publish(self, event: CredentialEvent) -> None:
        self._pending.append(event)

    def flush(self) -> None:
        pending, self._pending = self._pending, []
        for event in pending:
            self._target.publish(event)

    def discard(self) -> None:
        self._pending.clear()
