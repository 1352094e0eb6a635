from __future__ import annotations

from collections import deque

from adaptive_quality.defaults import HISTORY_SIZE
from adaptive_quality.model import OptimizationDecision


class DecisionHistory:
    """Bounded ring buffer of published decisions; oldest evicted first."""

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[OptimizationDecision] = deque(maxlen=capacity)

    def append(self, decision: OptimizationDecision) -> None:
        self._items.append(decision)

    def recent(self, limit: int | None = None) -> list[OptimizationDecision]:
        """Most-recent-first; ``limit`` of ``None`` returns everything kept."""
        items = list(reversed(self._items))
        if limit is None:
            return items
        return items[: max(limit, 0)]

    def latest(self) -> OptimizationDecision | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
