"""Callback registry used by gateways to publish events to the engine."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], None]


class Event(Generic[T]):
    """Synchronous publish/subscribe channel for a single event type.

    Handlers run in subscription order on the publisher's call stack. A
    handler that raises is logged and does not stop delivery to the rest.
    """

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._handlers: list[Handler[T]] = []

    def subscribe(self, handler: Handler[T]) -> Callable[[], None]:
        """Register a handler and return a callable that unregisters it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(handler)

        return _unsubscribe

    def unsubscribe(self, handler: Handler[T]) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def trigger(self, payload: T) -> None:
        for handler in list(self._handlers):
            try:
                handler(payload)
            except Exception:
                logger.exception("handler for %s failed", self.name)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"Event({self.name!r}, handlers={len(self._handlers)})"
