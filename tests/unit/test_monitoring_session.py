"""
Unit tests for the monitoring session (composition root).
"""
from datetime import timedelta

import pytest

from src.config import ComponentStatus, EscalationTier, RecordOutcome, Settings
from src.core.exceptions import ResourceNotFoundException, ValidationException
from src.escalation.domain import BusinessSchedule, QuietThresholdConfig
from src.monitoring.application import MonitoringSession
from tests.helpers import BUSINESS_NOW, COMPONENTS, OFF_HOURS_NOW, hours, make_snapshot


@pytest.fixture
def session() -> MonitoringSession:
    return MonitoringSession(
        components=COMPONENTS,
        retention=hours(24),
        tick_deadline=timedelta(seconds=30),
        clock=lambda: BUSINESS_NOW,
    )


def seconds(n: int) -> timedelta:
    return timedelta(seconds=n)


class TestIngest:

    @pytest.mark.unit
    def test_tick_finalized_when_all_components_report(self, session, t0):
        assert session.ingest("api", "ok", t0) is None
        assert session.ingest("storage", "ok", t0 + seconds(1)) is None

        result = session.ingest("realtime", "degraded", t0 + seconds(2))

        assert result.accepted
        assert result.snapshot.timestamp == t0 + seconds(2)
        assert session.snapshot().overall == ComponentStatus.DEGRADED
        assert len(session.history()) == 1

    @pytest.mark.unit
    def test_repeat_report_replaces_earlier(self, session, t0):
        session.ingest("api", "down", t0)
        session.ingest("api", "ok", t0 + seconds(1))
        session.ingest("storage", "ok", t0 + seconds(1))
        session.ingest("realtime", "ok", t0 + seconds(1))

        assert session.snapshot().overall == ComponentStatus.OK

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ("connected", ComponentStatus.OK),
        ("connecting", ComponentStatus.DEGRADED),
        ("disconnected", ComponentStatus.DOWN),
        ("DOWN", ComponentStatus.DOWN),
        ("on fire", ComponentStatus.DOWN),
        (ComponentStatus.DEGRADED, ComponentStatus.DEGRADED),
    ])
    def test_status_normalized(self, session, t0, raw, expected):
        session.ingest("api", "ok", t0)
        session.ingest("storage", "ok", t0)
        session.ingest("realtime", raw, t0)

        assert session.snapshot().statuses["realtime"] == expected

    @pytest.mark.unit
    def test_unknown_component_rejected(self, session, t0):
        with pytest.raises(ValidationException):
            session.ingest("payments", "ok", t0)

    @pytest.mark.unit
    def test_defaults_to_clock(self, session):
        for component in COMPONENTS:
            result = session.ingest(component, "ok")

        assert result.snapshot.timestamp == BUSINESS_NOW

    @pytest.mark.unit
    def test_out_of_order_tick_is_reported(self, session, t0):
        for component in COMPONENTS:
            session.ingest(component, "ok", t0)
        for component in COMPONENTS[:-1]:
            session.ingest(component, "down", t0 - hours(1))
        result = session.ingest(COMPONENTS[-1], "down", t0 - hours(1))

        assert result.outcome == RecordOutcome.OUT_OF_ORDER
        assert session.snapshot().overall == ComponentStatus.OK


class TestTickDeadline:

    @pytest.mark.unit
    def test_partial_tick_flushed_after_deadline(self, session, t0):
        session.ingest("api", "ok", t0)
        session.ingest("storage", "ok", t0 + seconds(5))

        result = session.flush_expired_tick(now=t0 + seconds(31))

        assert result.accepted
        assert result.snapshot.statuses["realtime"] == ComponentStatus.DOWN
        assert result.snapshot.timestamp == t0 + seconds(5)
        assert session.snapshot().overall == ComponentStatus.DOWN

    @pytest.mark.unit
    def test_not_flushed_before_deadline(self, session, t0):
        session.ingest("api", "ok", t0)

        assert session.flush_expired_tick(now=t0 + seconds(10)) is None
        assert session.history() == []

    @pytest.mark.unit
    def test_nothing_pending(self, session, t0):
        assert session.flush_expired_tick(now=t0 + hours(1)) is None

    @pytest.mark.unit
    def test_stale_report_not_folded_into_new_tick(self, session, t0):
        session.ingest("api", "down", t0)
        later = t0 + hours(2)

        assert session.ingest("storage", "ok", later) is None
        assert session.ingest("realtime", "ok", later) is None

        history = session.history()
        assert len(history) == 1
        assert history[0].timestamp == t0
        assert history[0].statuses == {
            "api": ComponentStatus.DOWN,
            "storage": ComponentStatus.DOWN,
            "realtime": ComponentStatus.DOWN,
        }

        result = session.flush_expired_tick(now=later + seconds(31))
        assert result.snapshot.timestamp == later
        assert result.snapshot.statuses["api"] == ComponentStatus.DOWN
        assert result.snapshot.statuses["storage"] == ComponentStatus.OK

    @pytest.mark.unit
    def test_naive_report_time_taken_as_utc(self, session, t0):
        naive = t0.replace(tzinfo=None)

        session.ingest("api", "ok", naive)
        session.ingest("storage", "ok", t0 + seconds(1))
        result = session.ingest("realtime", "ok", naive)

        assert result.accepted
        assert result.snapshot.timestamp == t0 + seconds(1)

    @pytest.mark.unit
    def test_naive_pending_tick_can_be_flushed(self, session, t0):
        session.ingest("api", "ok", t0.replace(tzinfo=None))

        result = session.flush_expired_tick(now=t0 + hours(1))

        assert result.accepted
        assert result.snapshot.timestamp == t0

    @pytest.mark.unit
    def test_ticks_recorded_while_session_locked(self, session, t0, monkeypatch):
        aggregator = session._aggregator
        original = aggregator.record
        held = []

        def record(snapshot, now=None):
            held.append(session._lock.locked())
            return original(snapshot, now)

        monkeypatch.setattr(aggregator, "record", record)

        for component in COMPONENTS:
            session.ingest(component, "ok", t0)
        session.ingest("api", "ok", t0 + seconds(1))
        session.flush_expired_tick(now=t0 + hours(1))

        assert held == [True, True]


class TestSnapshotAndTimeline:

    @pytest.mark.unit
    def test_empty_session_is_down(self, session, t0):
        assert session.snapshot().overall == ComponentStatus.DOWN
        segments = session.timeline(now=t0)
        assert len(segments) == 1
        assert segments[0].status == ComponentStatus.DOWN

    @pytest.mark.unit
    def test_record_snapshot_and_timeline(self, session, t0):
        session.record_snapshot(make_snapshot(t0 - hours(2)))
        session.record_snapshot(make_snapshot(t0 - hours(1), api="down"))

        segments = session.timeline(now=t0)

        assert [s.status for s in segments] == [ComponentStatus.OK, ComponentStatus.DOWN]
        assert sum(s.fraction_of_window for s in segments) == pytest.approx(1.0)


class TestCases:

    @pytest.mark.unit
    def test_touch_creates_and_moves_forward(self, session, t0):
        assert session.touch_case("c1", t0 - hours(5)) is True
        assert session.touch_case("c1", t0 - hours(6)) is False
        assert session.touch_case("c1", t0 - hours(1)) is True

        assert session.last_activity("c1") == t0 - hours(1)

    @pytest.mark.unit
    def test_naive_touch_taken_as_utc(self, session, t0):
        assert session.touch_case("c1", t0.replace(tzinfo=None)) is True
        assert session.touch_case("c1", t0 + hours(1)) is True
        assert session.touch_case("c1", t0.replace(tzinfo=None)) is False

        assert session.last_activity("c1") == t0 + hours(1)
        assert session.sweep_escalations(t0 + hours(2))["c1"] == EscalationTier.NONE

    @pytest.mark.unit
    def test_forget_case(self, session, t0):
        session.touch_case("c1", t0)
        session.forget_case("c1")

        assert session.cases() == []
        with pytest.raises(ResourceNotFoundException):
            session.forget_case("c1")

    @pytest.mark.unit
    def test_empty_case_id_rejected(self, session):
        with pytest.raises(ValidationException):
            session.touch_case("")

    @pytest.mark.unit
    def test_cases_returns_copies(self, session, t0):
        session.touch_case("c1", t0)
        copy = session.cases()[0]
        copy.last_activity_at = t0 + hours(10)

        assert session.last_activity("c1") == t0


class TestSweep:

    @pytest.mark.unit
    def test_sweep_business_hours(self, session, t0):
        session.touch_case("quiet", t0 - hours(13))
        session.touch_case("silent", t0 - hours(25))
        session.touch_case("busy", t0 - hours(1))

        tiers = session.sweep_escalations(t0)

        assert tiers == {
            "quiet": EscalationTier.WARNING,
            "silent": EscalationTier.ALERT,
            "busy": EscalationTier.NONE,
        }
        assert session.escalation_summary(tiers) == {
            "total_cases": 3, "none_count": 1, "warning_count": 1, "alert_count": 1
        }

    @pytest.mark.unit
    def test_sweep_off_hours(self, session):
        now = OFF_HOURS_NOW
        session.touch_case("quiet", now - hours(13))
        session.touch_case("silent", now - hours(25))

        assert set(session.sweep_escalations(now).values()) == {EscalationTier.NONE}

    @pytest.mark.unit
    def test_sweep_does_not_change_activity(self, session, t0):
        session.touch_case("c1", t0 - hours(30))
        session.sweep_escalations(t0)

        assert session.last_activity("c1") == t0 - hours(30)

    @pytest.mark.unit
    def test_evaluate_case(self, session, t0):
        session.touch_case("c1", t0 - hours(13))

        evaluation = session.evaluate_case("c1", t0)

        assert evaluation.tier == EscalationTier.WARNING
        assert evaluation.message == "Quiet for 13h (business hours)"

    @pytest.mark.unit
    def test_evaluate_unknown_case(self, session):
        with pytest.raises(ResourceNotFoundException):
            session.evaluate_case("missing")


class TestConfiguration:

    @pytest.mark.unit
    def test_update_thresholds_partial(self, session, t0):
        session.update_thresholds({"businessWarningHours": 20})
        session.touch_case("c1", t0 - hours(13))

        assert session.thresholds.business_warning_hours == 20
        assert session.sweep_escalations(t0)["c1"] == EscalationTier.NONE

    @pytest.mark.unit
    def test_update_thresholds_with_config(self, session):
        config = QuietThresholdConfig(businessWarningHours=2, businessAlertHours=4)

        assert session.update_thresholds(config) == config
        assert session.thresholds == config

    @pytest.mark.unit
    def test_invalid_update_leaves_config(self, session):
        before = session.thresholds

        with pytest.raises(ValidationException):
            session.update_thresholds({"businessWarningHours": 30})

        assert session.thresholds == before

    @pytest.mark.unit
    def test_import_with_extra_key_leaves_config(self, session):
        session.import_thresholds({"businessWarningHours": 2})
        before = session.thresholds

        with pytest.raises(ValidationException):
            session.import_thresholds({"businessWarningHours": 1, "extra": 2})

        assert session.thresholds == before
        assert session.thresholds.business_warning_hours == 2

    @pytest.mark.unit
    def test_export(self, session):
        assert '"offHoursAlertHours": 72' in session.export_thresholds()

    @pytest.mark.unit
    def test_load_schedule(self, session, t0):
        # Open around the clock on Wednesday: 30h quiet is past business alert
        session.load_schedule({"wednesday": {"open": 0, "close": 24}})
        session.touch_case("c1", OFF_HOURS_NOW - hours(30))

        assert session.sweep_escalations(OFF_HOURS_NOW)["c1"] == EscalationTier.ALERT

    @pytest.mark.unit
    def test_load_invalid_schedule_keeps_previous(self, session):
        before = session.schedule

        with pytest.raises(ValidationException):
            session.load_schedule({"monday": {"open": 20, "close": 10}})

        assert session.schedule == before

    @pytest.mark.unit
    def test_from_settings(self):
        settings = Settings(
            monitored_components=["api", "db"],
            heartbeat_retention_hours=6,
            business_timezone="Europe/London",
        )

        session = MonitoringSession.from_settings(settings, schedule=BusinessSchedule())

        assert session.components == ["api", "db"]
        assert session.retention == hours(6)
        assert session.timezone_name == "Europe/London"
