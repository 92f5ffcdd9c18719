"""Discrete simulation events and the bus that routes them to subscribers."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Optional

# Event type names
VILLAGER_BORN = "villager_born"
VILLAGER_DIED = "villager_died"
BIRTH_BLOCKED = "birth_blocked"
BUILDING_COMPLETED = "building_completed"
SKILL_LEVEL_UP = "skill_level_up"
EFFECT_APPLIED = "effect_applied"
EFFECT_EXPIRED = "effect_expired"

EVENT_TYPES: tuple[str, ...] = (
    VILLAGER_BORN,
    VILLAGER_DIED,
    BIRTH_BLOCKED,
    BUILDING_COMPLETED,
    SKILL_LEVEL_UP,
    EFFECT_APPLIED,
    EFFECT_EXPIRED,
)


@dataclass
class Event:
    """A simulation event."""

    event_type: str
    description: str
    day: int
    affected_villager_ids: list[int] = field(default_factory=list)
    data: dict = field(default_factory=dict)


Handler = Callable[[Event], None]


class EventBus:
    """Fire-and-forget publish/subscribe for simulation events.

    Handlers run synchronously in subscription order. The bus stamps events
    with ``day``, which the engine keeps in step with the clock.
    """

    def __init__(self) -> None:
        self.day: int = 0
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._wildcard: list[Handler] = []
        self._pending_events: list[Event] = []

    def subscribe(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        self._wildcard.append(handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(
        self,
        event_type: str,
        description: str,
        affected_villager_ids: Optional[list[int]] = None,
        day: Optional[int] = None,
        **data,
    ) -> Event:
        """Build an event and deliver it to every interested handler."""
        event = Event(
            event_type=event_type,
            description=description,
            day=self.day if day is None else day,
            affected_villager_ids=list(affected_villager_ids or []),
            data=data,
        )
        self.publish(event)
        return event

    def publish(self, event: Event) -> None:
        self._pending_events.append(event)
        for handler in list(self._handlers.get(event.event_type, [])):
            handler(event)
        for handler in list(self._wildcard):
            handler(event)

    @property
    def pending(self) -> list[Event]:
        return self._pending_events

    def clear_pending(self) -> list[Event]:
        events = list(self._pending_events)
        self._pending_events.clear()
        return events

    def count(self, event_type: str) -> int:
        return sum(1 for e in self._pending_events if e.event_type == event_type)
