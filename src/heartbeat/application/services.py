"""
Heartbeat Application Services
===============================

The heartbeat aggregator keeps a bounded, time-ordered history of
component snapshots and derives the current status and the trailing
timeline from it.

All public methods are safe to call from several reporting sources at
once; a single lock guards the history.
"""

import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, List, Optional, Sequence, Tuple

from src.config import RecordOutcome, TIMELINE_MIN_SEGMENT_MS
from src.core.exceptions import ValidationException
from src.heartbeat.domain import HeartbeatSnapshot, TimelineSegment, RecordResult
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _duration_ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


class HeartbeatAggregator:
    """
    Bounded heartbeat history with derived status and timeline.

    Samples must arrive in non-decreasing timestamp order. A sample older
    than the latest recorded one is dropped and reported, never reordered.
    """

    def __init__(
        self,
        components: Sequence[str],
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
        seed: Optional[HeartbeatSnapshot] = None,
    ):
        if retention <= timedelta(0):
            raise ValueError("retention window must be positive")
        self._components: Tuple[str, ...] = tuple(components)
        self._retention = retention
        self._clock = clock
        self._history: Deque[HeartbeatSnapshot] = deque()
        self._lock = threading.Lock()

        if seed is not None:
            self.record(seed)

    @property
    def components(self) -> Tuple[str, ...]:
        return self._components

    @property
    def retention(self) -> timedelta:
        return self._retention

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def history(self) -> List[HeartbeatSnapshot]:
        """Point-in-time copy of the retained history, oldest first."""
        with self._lock:
            return list(self._history)

    def record(
        self,
        snapshot: HeartbeatSnapshot,
        now: Optional[datetime] = None
    ) -> RecordResult:
        """
        Append a snapshot and evict entries older than the retention window.

        Args:
            snapshot: Sample covering every monitored component
            now: Reference time for eviction (defaults to the snapshot time)

        Returns:
            RecordResult describing whether the sample was kept

        Raises:
            ValidationException: If the snapshot's component set is wrong
        """
        try:
            snapshot.require_components(self._components)
        except ValidationException as e:
            logger.warning("Heartbeat snapshot rejected", extra={"error": e.message, **e.details})
            raise

        with self._lock:
            if self._history and snapshot.timestamp < self._history[-1].timestamp:
                latest = self._history[-1].timestamp
                logger.warning(
                    "Out-of-order heartbeat sample dropped",
                    extra={
                        "reason": RecordOutcome.OUT_OF_ORDER.value,
                        "sample_timestamp": snapshot.timestamp.isoformat(),
                        "latest_timestamp": latest.isoformat(),
                    }
                )
                return RecordResult(
                    outcome=RecordOutcome.OUT_OF_ORDER,
                    snapshot=snapshot,
                    reason="timestamp precedes latest recorded sample",
                    details={"latest_timestamp": latest.isoformat()},
                )

            self._history.append(snapshot)
            evicted = self._evict(now or snapshot.timestamp)

        logger.debug(
            "Heartbeat recorded",
            extra={"overall": snapshot.overall.value, "evicted": evicted}
        )
        return RecordResult(
            outcome=RecordOutcome.RECORDED,
            snapshot=snapshot,
            evicted=evicted,
        )

    def _evict(self, now: datetime) -> int:
        # The latest entry always survives so current() keeps the last known state
        cutoff = now - self._retention
        evicted = 0
        while len(self._history) > 1 and self._history[0].timestamp < cutoff:
            self._history.popleft()
            evicted += 1
        return evicted

    def current(self, now: Optional[datetime] = None) -> HeartbeatSnapshot:
        """
        Most recent snapshot, or an all-down snapshot when nothing is recorded.

        Absence of data is never reported as healthy.
        """
        with self._lock:
            if self._history:
                return self._history[-1]
        return HeartbeatSnapshot.unknown(now or self._clock(), self._components)

    def timeline(
        self,
        now: Optional[datetime] = None,
        window: Optional[timedelta] = None
    ) -> List[TimelineSegment]:
        """
        Proportional segments covering the trailing window, oldest first.

        Each retained snapshot spans until the next one (the last until
        ``now``), floored at one second. Fractions are relative to the
        summed durations, so they add up to 1.0 even when the history is
        shorter than the window.
        """
        now = now or self._clock()
        window = window or self._retention
        start = now - window

        with self._lock:
            entries = [s for s in self._history if start <= s.timestamp <= now]
            latest = self._history[-1] if self._history else None

        if not entries:
            fallback = latest or HeartbeatSnapshot.unknown(now, self._components)
            return [
                TimelineSegment(
                    start=start,
                    duration_ms=max(_duration_ms(window), TIMELINE_MIN_SEGMENT_MS),
                    status=fallback.overall,
                    fraction_of_window=1.0,
                )
            ]

        spans = []
        for idx, entry in enumerate(entries):
            end = entries[idx + 1].timestamp if idx + 1 < len(entries) else now
            duration = max(_duration_ms(end - entry.timestamp), TIMELINE_MIN_SEGMENT_MS)
            spans.append((entry, duration))

        total = sum(duration for _, duration in spans)

        return [
            TimelineSegment(
                start=entry.timestamp,
                duration_ms=duration,
                status=entry.overall,
                fraction_of_window=duration / total,
            )
            for entry, duration in spans
        ]
