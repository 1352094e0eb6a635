from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

DECISION_CHANGED = "decision.changed"


@dataclass(slots=True)
class Event:
    name: str
    payload: dict[str, Any]
    timestamp: str


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable[[Event], None]]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: Callable[[Event], None]) -> Callable[[], None]:
        """Register *handler*; the returned callable removes it again."""
        self._subscribers[event_name].append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        event = Event(
            name=event_name,
            payload=payload,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        for handler in list(self._subscribers.get(event_name, [])):
            try:
                handler(event)
            except Exception as exc:
                logger.warning("EventBus handler for %s failed: %s", event_name, exc)

    def subscriber_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, []))

    def clear(self) -> None:
        self._subscribers.clear()
