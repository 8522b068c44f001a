"""
Capflow Event Bus

Async publish/subscribe channel the capture engine uses to hand annotated
candidates and conversion results to whoever creates tasks.

Usage:
    from capflow.events import EventBus, Event, CAPTURE_ANNOTATED

    bus = EventBus()

    async def on_candidate(event: Event):
        print(event.payload["title"])

    bus.subscribe(CAPTURE_ANNOTATED, on_candidate)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from uuid import uuid4

from capflow.utils.logging import get_logger

logger = get_logger(__name__)

CAPTURE_SAVED = "capture.saved"
CAPTURE_ANNOTATED = "capture.annotated"
CAPTURE_PROCESSED = "capture.processed"
CAPTURE_LINKED = "capture.linked"


@dataclass
class Event:
    """An event delivered to subscribers."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: str(uuid4()))

    def __str__(self) -> str:
        return f"Event({self.name}, id={self.event_id[:8]})"


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """
    Async event bus.

    Handlers run in subscription order when an event is emitted. Names
    ending in ".*" subscribe to a prefix and "*" to everything. A failing
    or slow handler is logged and never stops the others or the emitter.
    """

    def __init__(self, handler_timeout: float = 30.0):
        self._handlers: dict[str, list[EventHandler]] = {}
        self._handler_timeout = handler_timeout

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug("handler_subscribed", event_name=event_name, handler=handler.__name__)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> bool:
        """Returns True if the handler was subscribed."""
        handlers = self._handlers.get(event_name, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def _get_handlers(self, event_name: str) -> list[EventHandler]:
        handlers = list(self._handlers.get(event_name, []))

        # "capture.*" matches "capture.linked"
        parts = event_name.split(".")
        for i in range(len(parts) - 1):
            handlers.extend(self._handlers.get(".".join(parts[: i + 1]) + ".*", []))

        handlers.extend(self._handlers.get("*", []))
        return handlers

    async def emit(self, event_name: str, payload: dict[str, Any] | None = None) -> Event:
        """Deliver an event to every matching handler and return it."""
        ev = Event(name=event_name, payload=payload or {})
        logger.debug("event_emitted", event_obj=str(ev))

        for handler in self._get_handlers(event_name):
            try:
                await asyncio.wait_for(handler(ev), timeout=self._handler_timeout)
            except asyncio.TimeoutError:
                logger.error(
                    "handler_timeout",
                    event_obj=str(ev),
                    handler=handler.__name__,
                    timeout=self._handler_timeout,
                )
            except Exception as e:
                logger.error(
                    "handler_error",
                    event_obj=str(ev),
                    handler=handler.__name__,
                    error=str(e),
                    exc_info=True,
                )
        return ev


# Global event bus instance (lazy-initialized)
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    global _event_bus
    if _event_bus is None:
        from capflow.config import get_config

        _event_bus = EventBus(handler_timeout=get_config().events.handler_timeout)
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus (useful for testing)."""
    global _event_bus
    _event_bus = None
