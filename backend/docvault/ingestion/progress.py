"""
Progress reporting for ingestion runs.

A ProgressReporter keeps the latest ProgressSnapshot and fans every new
one out to its listeners, synchronously and in registration order. A
listener that raises is logged and skipped so it can neither starve the
other listeners nor abort the run.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of an ingestion run."""

    current: int = 0
    total: int = 0
    current_item: str = ""
    status: str = "idle"
    succeeded: tuple[str, ...] = field(default_factory=tuple)
    failed: tuple[str, ...] = field(default_factory=tuple)
    loaded_chunks: int = 0
    estimated_time_remaining: float = 0.0

    def update(self, **changes) -> "ProgressSnapshot":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "total": self.total,
            "current_item": self.current_item,
            "status": self.status,
            "succeeded": list(self.succeeded),
            "failed": list(self.failed),
            "loaded_chunks": self.loaded_chunks,
            "estimated_time_remaining": self.estimated_time_remaining,
        }


ProgressListener = Callable[[ProgressSnapshot], None]


class ProgressReporter:
    """
    Listener registry broadcasting progress snapshots.

    Usage:
        reporter = ProgressReporter()
        reporter.subscribe(lambda s: print(f"{s.current}/{s.total} {s.status}"))
        reporter.publish(ProgressSnapshot(current=1, total=3, status="loading"))
    """

    def __init__(self):
        self._listeners: list[ProgressListener] = []
        self._latest = ProgressSnapshot()

    @property
    def latest(self) -> ProgressSnapshot:
        return self._latest

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def publish(self, snapshot: ProgressSnapshot) -> None:
        self._latest = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Progress listener {listener!r} failed")

    def clear(self) -> None:
        """Drop every registered listener."""
        self._listeners.clear()
