"""
Monitoring Application Services
================================

The monitoring session is the composition root of the engine. It owns
one heartbeat aggregator and the map of case activity, and exposes the
in-process contract collaborators use:

- inbound: ingest, touch_case, update_thresholds, load_schedule
- outbound: snapshot, timeline, sweep_escalations

The session never sends notifications; it returns tiers for a
collaborator to act on.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from src.config import ComponentStatus, EscalationTier, Settings, VALID_ESCALATION_TIERS
from src.core.exceptions import ResourceNotFoundException, ValidationException
from src.escalation.domain import (
    BusinessSchedule,
    CaseActivityRecord,
    QuietEvaluation,
    QuietThresholdConfig,
    QuietWindowEscalator,
)
from src.escalation.infrastructure import QuietThresholdManager
from src.heartbeat.application import HeartbeatAggregator
from src.heartbeat.domain import HeartbeatSnapshot, RecordResult, TimelineSegment, normalize_status
from src.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(at: datetime) -> datetime:
    return at.replace(tzinfo=timezone.utc) if at.tzinfo is None else at


class _PendingTick:
    """Component reports collected for the sampling tick in progress."""

    def __init__(self, opened_at: datetime):
        self.opened_at = opened_at
        self.latest_at = opened_at
        self.statuses: Dict[str, ComponentStatus] = {}

    def add(self, component: str, status: ComponentStatus, at: datetime) -> None:
        self.statuses[component] = status
        if at > self.latest_at:
            self.latest_at = at


class MonitoringSession:
    """
    Owns heartbeat history and case activity for one process lifetime.

    Construct a fresh instance per test; nothing here is global.
    """

    def __init__(
        self,
        components: Sequence[str] = ("api", "storage", "realtime"),
        retention: timedelta = timedelta(hours=24),
        thresholds: Optional[QuietThresholdManager] = None,
        schedule: Optional[BusinessSchedule] = None,
        timezone_name: str = "UTC",
        default_timezone: str = "UTC",
        tick_deadline: timedelta = timedelta(seconds=30),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._clock = clock
        self._aggregator = HeartbeatAggregator(components, retention=retention, clock=clock)
        self._thresholds = thresholds or QuietThresholdManager()
        self._schedule = schedule or BusinessSchedule.default()
        self._timezone = timezone_name
        self._default_timezone = default_timezone
        self._tick_deadline = tick_deadline

        self._lock = threading.Lock()
        self._pending: Optional[_PendingTick] = None
        self._cases: Dict[str, CaseActivityRecord] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        thresholds: Optional[QuietThresholdManager] = None,
        schedule: Optional[BusinessSchedule] = None,
    ) -> "MonitoringSession":
        """Build a session from application settings."""
        return cls(
            components=settings.monitored_components,
            retention=timedelta(hours=settings.heartbeat_retention_hours),
            thresholds=thresholds,
            schedule=schedule,
            timezone_name=settings.business_timezone,
            default_timezone=settings.default_timezone,
            tick_deadline=timedelta(seconds=settings.tick_deadline_seconds),
        )

    # ========== Heartbeat ==========

    @property
    def components(self) -> List[str]:
        return list(self._aggregator.components)

    @property
    def retention(self) -> timedelta:
        return self._aggregator.retention

    def ingest(
        self,
        component: str,
        status: Union[ComponentStatus, str],
        at: Optional[datetime] = None
    ) -> Optional[RecordResult]:
        """
        Merge one component report into the tick in progress.

        The tick is finalized and recorded once every monitored component
        has reported. A repeated report within a tick replaces the earlier one.
        A pending tick already past its deadline at ``at`` is finalized
        first, so stale reports never leak into a fresh tick.

        Naive ``at`` values are taken as UTC.

        Returns:
            RecordResult when this report completed a tick, otherwise None

        Raises:
            ValidationException: If the component is not monitored
        """
        if component not in self._aggregator.components:
            raise ValidationException(
                f"Unknown component '{component}'",
                {"component": component, "monitored": list(self._aggregator.components)}
            )

        at = _as_utc(at or self._clock())
        normalized = normalize_status(status)

        # Record under the session lock: finalization order is record order
        with self._lock:
            self._flush_if_expired(at)

            if self._pending is None:
                self._pending = _PendingTick(at)
            self._pending.add(component, normalized, at)

            if len(self._pending.statuses) < len(self._aggregator.components):
                return None
            tick, self._pending = self._pending, None
            return self._aggregator.record(
                HeartbeatSnapshot(timestamp=tick.latest_at, statuses=tick.statuses)
            )

    def flush_expired_tick(self, now: Optional[datetime] = None) -> Optional[RecordResult]:
        """
        Finalize a partial tick whose deadline has elapsed.

        Components that never reported in the tick are recorded as down.
        """
        now = _as_utc(now or self._clock())
        with self._lock:
            return self._flush_if_expired(now)

    def _flush_if_expired(self, now: datetime) -> Optional[RecordResult]:
        # Caller holds self._lock
        if self._pending is None or now - self._pending.opened_at < self._tick_deadline:
            return None
        tick, self._pending = self._pending, None

        missing = [c for c in self._aggregator.components if c not in tick.statuses]
        statuses = dict(tick.statuses)
        for component in missing:
            statuses[component] = ComponentStatus.DOWN

        logger.info(
            "Heartbeat tick finalized by deadline",
            extra={"missing_components": missing, "opened_at": tick.opened_at.isoformat()}
        )
        return self._aggregator.record(
            HeartbeatSnapshot(timestamp=tick.latest_at, statuses=statuses)
        )

    def record_snapshot(self, snapshot: HeartbeatSnapshot) -> RecordResult:
        """Record a complete snapshot pushed by a collaborator."""
        return self._aggregator.record(snapshot)

    def snapshot(self, now: Optional[datetime] = None) -> HeartbeatSnapshot:
        return self._aggregator.current(now)

    def timeline(
        self,
        now: Optional[datetime] = None,
        window: Optional[timedelta] = None
    ) -> List[TimelineSegment]:
        return self._aggregator.timeline(now, window)

    def history(self) -> List[HeartbeatSnapshot]:
        return self._aggregator.history()

    # ========== Cases ==========

    def touch_case(self, case_id: str, at: Optional[datetime] = None) -> bool:
        """
        Record activity on a case, creating it when first seen.

        Naive ``at`` values are taken as UTC.

        Returns:
            False if ``at`` is not newer than the recorded activity
        """
        if not case_id:
            raise ValidationException("case_id must not be empty")
        at = _as_utc(at or self._clock())

        with self._lock:
            record = self._cases.get(case_id)
            if record is None:
                self._cases[case_id] = CaseActivityRecord(case_id=case_id, last_activity_at=at)
                return True
            return record.touch(at)

    def forget_case(self, case_id: str) -> None:
        """
        Stop tracking a case (e.g. closed).

        Raises:
            ResourceNotFoundException: If the case is not tracked
        """
        with self._lock:
            if self._cases.pop(case_id, None) is None:
                raise ResourceNotFoundException("Case", case_id)

    def last_activity(self, case_id: str) -> datetime:
        with self._lock:
            record = self._cases.get(case_id)
            if record is None:
                raise ResourceNotFoundException("Case", case_id)
            return record.last_activity_at

    def cases(self) -> List[CaseActivityRecord]:
        """Point-in-time copy of tracked cases."""
        with self._lock:
            return [
                CaseActivityRecord(case_id=r.case_id, last_activity_at=r.last_activity_at)
                for r in self._cases.values()
            ]

    # ========== Escalation ==========

    @property
    def thresholds(self) -> QuietThresholdConfig:
        return self._thresholds.config

    @property
    def schedule(self) -> BusinessSchedule:
        with self._lock:
            return self._schedule

    @property
    def timezone_name(self) -> str:
        return self._timezone

    def evaluate_case(self, case_id: str, now: Optional[datetime] = None) -> QuietEvaluation:
        """Evaluate one tracked case with its context."""
        last = self.last_activity(case_id)
        return QuietWindowEscalator.evaluate(
            case_id, last, now or self._clock(),
            self.thresholds, self.schedule, self._timezone, self._default_timezone
        )

    def sweep_escalations(self, now: Optional[datetime] = None) -> Dict[str, EscalationTier]:
        """
        Classify every tracked case.

        Works on a copy of the activity map so cases added or removed
        concurrently are simply picked up by the next sweep.
        """
        now = now or self._clock()
        records = self.cases()
        thresholds = self.thresholds
        schedule = self.schedule

        with log_latency(logger, "escalation_sweep", cases=len(records)) as context:
            tiers = QuietWindowEscalator.classify_all(
                records, now, thresholds, schedule, self._timezone, self._default_timezone
            )
            context.update(self.escalation_summary(tiers))
        return tiers

    @staticmethod
    def escalation_summary(tiers: Mapping[str, EscalationTier]) -> Dict[str, int]:
        """Per-tier counts for a sweep result."""
        summary = {"total_cases": len(tiers)}
        for tier in VALID_ESCALATION_TIERS:
            summary[f"{tier.value}_count"] = sum(1 for t in tiers.values() if t == tier)
        return summary

    # ========== Configuration ==========

    def update_thresholds(
        self,
        config: Union[QuietThresholdConfig, Mapping[str, Any]]
    ) -> QuietThresholdConfig:
        """
        Replace (config object) or partially update (mapping) the thresholds.

        Raises:
            ValidationException: If the result would be invalid
        """
        if isinstance(config, QuietThresholdConfig):
            return self._thresholds.import_document(config.to_document())
        return self._thresholds.update(config)

    def import_thresholds(self, document: Union[str, bytes, Mapping[str, Any]]) -> QuietThresholdConfig:
        return self._thresholds.import_document(document)

    def export_thresholds(self) -> str:
        return self._thresholds.export_document()

    def load_schedule(self, schedule: Union[BusinessSchedule, Mapping[str, Any]]) -> BusinessSchedule:
        """
        Replace the weekly business schedule.

        Raises:
            ValidationException: If a mapping cannot be parsed
        """
        if not isinstance(schedule, BusinessSchedule):
            schedule = BusinessSchedule.from_document(schedule)
        with self._lock:
            self._schedule = schedule
        logger.info("Business schedule loaded", extra={"open_days": len(schedule.days)})
        return schedule
