"""Tick-scoped publish/subscribe bus between the simulation and cognition.

Each colony owns its own :class:`EventBus`; there is no module-level listener
registry, so parallel simulations and tests never see each other's events.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from .logging_utils import LOG_TAG_ERROR, log_error


class EventType(str, Enum):
    """Events the simulation emits."""

    # Social
    MEETING = "dwarf:meeting"
    PARTING = "dwarf:parting"

    # Discovery
    FOOD_FOUND = "dwarf:food_found"
    FOOD_DEPLETED = "dwarf:food_depleted"
    NEW_TERRAIN = "dwarf:new_terrain"

    # State changes
    HUNGER_THRESHOLD = "dwarf:hunger_threshold"
    MOOD_SHIFT = "dwarf:mood_shift"

    # World
    DEATH = "dwarf:death"
    SPAWN = "dwarf:spawn"
    TICK = "world:tick"


Payload = Mapping[str, Any]
Handler = Callable[[Payload], None]
Unsubscribe = Callable[[], None]


def safe_call(label: str, callback: Optional[Callable[..., Any]], *args: Any) -> bool:
    """Invoke a UI or subscriber callback; failures are logged, never raised."""
    if callback is None:
        return False
    try:
        callback(*args)
    except Exception as exc:
        log_error(f"  {LOG_TAG_ERROR} [{label}] Callback error: {exc}")
        return False
    return True


class EventBus:
    """Synchronous fan-out of event payloads to subscribed handlers."""

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[Handler]] = defaultdict(list)

    def on(self, event: EventType, handler: Handler) -> Unsubscribe:
        """Subscribe ``handler``; returns a callable that removes it again."""
        self._listeners[event].append(handler)

        def unsubscribe() -> None:
            handlers = self._listeners.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def once(self, event: EventType, handler: Handler) -> Unsubscribe:
        """Subscribe for a single delivery."""
        unsubscribe: Optional[Unsubscribe] = None

        def wrapper(payload: Payload) -> None:
            if unsubscribe is not None:
                unsubscribe()
            handler(payload)

        unsubscribe = self.on(event, wrapper)
        return unsubscribe

    def emit(self, event: EventType, payload: Optional[Payload] = None) -> int:
        """Deliver ``payload`` to every handler; returns how many ran cleanly.

        A failing handler is logged and skipped; the rest still run.
        """
        handlers = list(self._listeners.get(event, ()))
        delivered = 0
        for handler in handlers:
            if safe_call(f"EventBus {event.value}", handler, payload or {}):
                delivered += 1
        return delivered

    def off(self, event: Optional[EventType] = None) -> None:
        """Drop all handlers for ``event``, or every handler when omitted."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: EventType) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ["EventType", "EventBus", "Handler", "Payload", "Unsubscribe", "safe_call"]
