"""Synchronous publish/subscribe for typed engine events."""
from __future__ import annotations

import logging
from typing import Callable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

WILDCARD = "*"

Handler = Callable[[BaseModel], None]


class EventBus:
    """Delivers each published event to the subscribers of its `event_type` and to wildcard subscribers.

    Delivery is synchronous and follows subscription order across both kinds,
    so a wildcard subscriber registered first sees an event before any handler
    that reacts to it publishes follow-ups. A subscriber that raises is logged
    and skipped; the remaining subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[str, Handler]] = []

    def subscribe(self, event_type: str, handler: Handler) -> Callable[[], None]:
        entry = (event_type, handler)
        self._subscriptions.append(entry)

        def _unsubscribe() -> None:
            if entry in self._subscriptions:
                self._subscriptions.remove(entry)

        return _unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        return self.subscribe(WILDCARD, handler)

    def publish(self, event: BaseModel) -> None:
        event_type = getattr(event, "event_type", None)
        if not event_type:
            logger.error("Refusing to publish untyped event: %r", event)
            return
        for subscribed, handler in list(self._subscriptions):
            if subscribed != event_type and subscribed != WILDCARD:
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error("Subscriber %r failed on %s: %s", handler, event_type, e, exc_info=True)

    def clear(self) -> None:
        self._subscriptions.clear()
