"""
Shared test data: fixed instants and snapshot builders.
"""
from datetime import datetime, timedelta, timezone

from src.config import ComponentStatus
from src.heartbeat.domain import HeartbeatSnapshot

COMPONENTS = ("api", "storage", "realtime")

# 2024-01-17 is a Wednesday
BUSINESS_NOW = datetime(2024, 1, 17, 10, 0, tzinfo=timezone.utc)
OFF_HOURS_NOW = datetime(2024, 1, 17, 23, 0, tzinfo=timezone.utc)
WEEKEND_NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)


def make_snapshot(at: datetime, api="ok", storage="ok", realtime="ok") -> HeartbeatSnapshot:
    """Snapshot of the three default components."""
    return HeartbeatSnapshot(
        timestamp=at,
        statuses={
            "api": ComponentStatus(api),
            "storage": ComponentStatus(storage),
            "realtime": ComponentStatus(realtime),
        },
    )


def hours(n: float) -> timedelta:
    return timedelta(hours=n)
