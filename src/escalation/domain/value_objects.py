"""
Escalation Value Objects
=========================

Immutable value objects for the quiet-window escalation domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import json
import math
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.config import (
    CalendarMode, EscalationTier, Weekday, WEEKDAYS,
    QUIET_THRESHOLD_KEYS, QUIET_THRESHOLD_MIN_HOURS, QUIET_THRESHOLD_MAX_HOURS,
)
from src.core.exceptions import ValidationException
from src.escalation.domain.entities import CaseActivityRecord, QuietEvaluation
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _pydantic_details(exc: ValidationError) -> dict:
    return {"errors": [err["msg"] for err in exc.errors()]}


class QuietThresholdConfig(BaseModel):
    """
    Quiet-window thresholds in hours.

    Exported and imported as a flat document keyed by the camelCase names
    (``businessWarningHours`` ...). Within each calendar mode the warning
    threshold must fire before the alert threshold.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )

    business_warning_hours: float = Field(
        default=12, alias="businessWarningHours",
        ge=QUIET_THRESHOLD_MIN_HOURS, le=QUIET_THRESHOLD_MAX_HOURS
    )
    business_alert_hours: float = Field(
        default=24, alias="businessAlertHours",
        ge=QUIET_THRESHOLD_MIN_HOURS, le=QUIET_THRESHOLD_MAX_HOURS
    )
    off_hours_warning_hours: float = Field(
        default=36, alias="offHoursWarningHours",
        ge=QUIET_THRESHOLD_MIN_HOURS, le=QUIET_THRESHOLD_MAX_HOURS
    )
    off_hours_alert_hours: float = Field(
        default=72, alias="offHoursAlertHours",
        ge=QUIET_THRESHOLD_MIN_HOURS, le=QUIET_THRESHOLD_MAX_HOURS
    )

    @model_validator(mode="after")
    def validate_ordering(self) -> "QuietThresholdConfig":
        """Warning must fire strictly before alert in both modes."""
        if self.business_warning_hours >= self.business_alert_hours:
            raise ValueError("businessWarningHours must be less than businessAlertHours")
        if self.off_hours_warning_hours >= self.off_hours_alert_hours:
            raise ValueError("offHoursWarningHours must be less than offHoursAlertHours")
        return self

    @classmethod
    def from_document(cls, document: Union[str, bytes, Mapping[str, Any]]) -> "QuietThresholdConfig":
        """
        Build a configuration from an imported flat document.

        Only the four recognized keys are permitted; any other key rejects
        the whole document. Keys that are absent take their defaults.

        Raises:
            ValidationException: On malformed JSON, unknown keys, or bad values
        """
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                raise ValidationException("Quiet threshold document is not valid JSON", {"error": str(e)})

        if not isinstance(document, Mapping):
            raise ValidationException("Quiet threshold document must be an object")

        unknown = sorted(set(document) - set(QUIET_THRESHOLD_KEYS))
        if unknown:
            raise ValidationException(
                "Invalid quiet threshold document structure",
                {"unknown_keys": unknown, "allowed_keys": list(QUIET_THRESHOLD_KEYS)}
            )

        try:
            return cls.model_validate(dict(document))
        except ValidationError as e:
            raise ValidationException("Invalid quiet threshold values", _pydantic_details(e))

    def merged(self, partial: Mapping[str, Any]) -> "QuietThresholdConfig":
        """Return a new configuration with the recognized keys of ``partial`` applied."""
        unknown = sorted(set(partial) - set(QUIET_THRESHOLD_KEYS))
        if unknown:
            raise ValidationException(
                "Unrecognized quiet threshold keys",
                {"unknown_keys": unknown}
            )
        return self.from_document({**self.to_document(), **partial})

    def to_document(self) -> Dict[str, float]:
        """Flat camelCase document of the four thresholds."""
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_document(), indent=2)

    def pair_for(self, mode: CalendarMode) -> Tuple[float, float]:
        """(warning_hours, alert_hours) for the given calendar mode."""
        if mode == CalendarMode.BUSINESS:
            return self.business_warning_hours, self.business_alert_hours
        return self.off_hours_warning_hours, self.off_hours_alert_hours


class OpenInterval(BaseModel):
    """Half-open opening interval ``[open_hour, close_hour)`` in local time."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    open_hour: float = Field(..., alias="open", ge=0, lt=24)
    close_hour: float = Field(..., alias="close", gt=0, le=24)

    @model_validator(mode="after")
    def validate_interval(self) -> "OpenInterval":
        if self.open_hour >= self.close_hour:
            raise ValueError("open must be before close")
        return self

    def contains(self, hour_of_day: float) -> bool:
        return self.open_hour <= hour_of_day < self.close_hour


class BusinessSchedule(BaseModel):
    """
    Weekly opening hours. A weekday absent from ``days`` is closed all day.

    Example YAML:

        monday: {open: 6, close: 21}
        saturday: closed
    """
    model_config = ConfigDict(frozen=True)

    days: Dict[Weekday, OpenInterval] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> "BusinessSchedule":
        """Monday to Friday, 06:00 to 21:00 local."""
        weekday_hours = OpenInterval(open=6, close=21)
        return cls(days={day: weekday_hours for day in WEEKDAYS[:5]})

    @classmethod
    def from_document(cls, document: Optional[Mapping[str, Any]]) -> "BusinessSchedule":
        """
        Parse a weekday-keyed document.

        Values may be ``{open, close}`` mappings or ``null``/``"closed"``.

        Raises:
            ValidationException: On unknown weekdays or malformed intervals
        """
        if document is None:
            return cls()
        if not isinstance(document, Mapping):
            raise ValidationException("Business schedule must be a mapping of weekday to hours")

        valid_days = {day.value for day in WEEKDAYS}
        days = {}
        for key, value in document.items():
            name = str(key).strip().lower()
            if name not in valid_days:
                raise ValidationException(f"Unknown weekday '{key}' in business schedule")
            if value is None or (isinstance(value, str) and value.strip().lower() == "closed"):
                continue
            try:
                days[Weekday(name)] = OpenInterval.model_validate(value)
            except ValidationError as e:
                raise ValidationException(
                    f"Invalid opening hours for {name}", _pydantic_details(e)
                )
        return cls(days=days)

    def interval_for(self, weekday_index: int) -> Optional[OpenInterval]:
        """Opening interval for ``datetime.weekday()`` index (Monday is 0)."""
        return self.days.get(WEEKDAYS[weekday_index])

    def to_document(self) -> Dict[str, Optional[Dict[str, float]]]:
        document = {}
        for day in WEEKDAYS:
            interval = self.days.get(day)
            document[day.value] = interval.model_dump(by_alias=True) if interval else None
        return document


@lru_cache(maxsize=64)
def resolve_timezone(name: Optional[str], default: str = "UTC") -> Tuple[ZoneInfo, bool]:
    """
    Resolve an IANA timezone name.

    Returns the zone and whether the default had to be used instead. The
    fallback is logged once per name.
    """
    if name:
        try:
            return ZoneInfo(name), False
        except (ZoneInfoNotFoundError, ValueError, OSError):
            pass
    logger.warning(
        "Timezone could not be resolved, falling back to default",
        extra={"timezone": name, "fallback_timezone": default}
    )
    try:
        return ZoneInfo(default), True
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return ZoneInfo("UTC"), True


class BusinessCalendar:
    """
    Pure functions deciding whether an instant is inside business hours.

    Naive datetimes are interpreted as UTC.
    """

    @staticmethod
    def localize(instant: datetime, tz_name: Optional[str], default: str = "UTC") -> Tuple[datetime, bool]:
        """Convert ``instant`` into local time; also report timezone fallback."""
        zone, fell_back = resolve_timezone(tz_name, default)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(zone), fell_back

    @staticmethod
    def mode_at(
        instant: datetime,
        schedule: BusinessSchedule,
        tz_name: Optional[str],
        default: str = "UTC"
    ) -> CalendarMode:
        """
        Calendar mode at ``instant``.

        A weekday with no opening interval is a weekend; otherwise the
        time of day decides between business and off-hours.
        """
        local, _ = BusinessCalendar.localize(instant, tz_name, default)
        interval = schedule.interval_for(local.weekday())
        if interval is None:
            return CalendarMode.WEEKEND

        hour_of_day = (
            local.hour
            + local.minute / 60
            + (local.second + local.microsecond / 1_000_000) / 3600
        )
        if interval.contains(hour_of_day):
            return CalendarMode.BUSINESS
        return CalendarMode.OFF_HOURS

    @staticmethod
    def is_business_hours(
        instant: datetime,
        schedule: BusinessSchedule,
        tz_name: Optional[str],
        default: str = "UTC"
    ) -> bool:
        return BusinessCalendar.mode_at(instant, schedule, tz_name, default) == CalendarMode.BUSINESS


_CONTEXT_LABELS = {
    CalendarMode.BUSINESS: "business hours",
    CalendarMode.OFF_HOURS: "off-hours quiet period",
    CalendarMode.WEEKEND: "weekend quiet period",
}


def context_label(mode: CalendarMode) -> str:
    return _CONTEXT_LABELS[mode]


def format_quiet_message(elapsed_hours: Optional[float], mode: CalendarMode) -> str:
    """Human summary such as ``"Quiet for 13h (business hours)"``."""
    label = context_label(mode)
    if elapsed_hours is None or not math.isfinite(elapsed_hours):
        return f"No staff activity recorded yet ({label})"
    return f"Quiet for {math.floor(elapsed_hours)}h ({label})"


class QuietWindowEscalator:
    """
    Stateless quiet-window classification.

    The calendar mode at evaluation time, not at the time of the last
    activity, selects which threshold pair applies.
    """

    @staticmethod
    def tier_for(elapsed_hours: float, warning_hours: float, alert_hours: float) -> EscalationTier:
        if elapsed_hours >= alert_hours:
            return EscalationTier.ALERT
        if elapsed_hours >= warning_hours:
            return EscalationTier.WARNING
        return EscalationTier.NONE

    @staticmethod
    def evaluate(
        case_id: str,
        last_activity_at: Optional[datetime],
        now: datetime,
        thresholds: QuietThresholdConfig,
        schedule: BusinessSchedule,
        tz_name: Optional[str],
        default_timezone: str = "UTC"
    ) -> QuietEvaluation:
        """
        Full evaluation of one case, including the context that produced the tier.

        A case with no recorded activity is treated as quiet forever and
        lands on ``alert``. Activity in the future is clock skew: elapsed
        time is clamped to zero and the tier is ``none``.
        """
        mode = BusinessCalendar.mode_at(now, schedule, tz_name, default_timezone)
        warning_hours, alert_hours = thresholds.pair_for(mode)

        if last_activity_at is None:
            return QuietEvaluation(
                case_id=case_id,
                tier=EscalationTier.ALERT,
                elapsed_hours=None,
                mode=mode,
                warning_hours=warning_hours,
                alert_hours=alert_hours,
                message=format_quiet_message(None, mode),
            )

        if last_activity_at.tzinfo is None:
            last_activity_at = last_activity_at.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        raw_hours = (now - last_activity_at).total_seconds() / 3600
        clock_skew = raw_hours < 0
        if clock_skew:
            logger.debug(
                "Last activity is in the future, clamping elapsed time",
                extra={"case_id": case_id, "skew_hours": round(-raw_hours, 3)}
            )
        elapsed_hours = max(0.0, raw_hours)

        tier = (
            EscalationTier.NONE if clock_skew
            else QuietWindowEscalator.tier_for(elapsed_hours, warning_hours, alert_hours)
        )
        return QuietEvaluation(
            case_id=case_id,
            tier=tier,
            elapsed_hours=elapsed_hours,
            mode=mode,
            warning_hours=warning_hours,
            alert_hours=alert_hours,
            message=format_quiet_message(elapsed_hours, mode),
            clock_skew=clock_skew,
        )

    @staticmethod
    def classify(
        case_id: str,
        last_activity_at: Optional[datetime],
        now: datetime,
        thresholds: QuietThresholdConfig,
        schedule: BusinessSchedule,
        tz_name: Optional[str],
        default_timezone: str = "UTC"
    ) -> EscalationTier:
        """Escalation tier for one case."""
        return QuietWindowEscalator.evaluate(
            case_id, last_activity_at, now, thresholds, schedule, tz_name, default_timezone
        ).tier

    @staticmethod
    def classify_all(
        records: Iterable[CaseActivityRecord],
        now: datetime,
        thresholds: QuietThresholdConfig,
        schedule: BusinessSchedule,
        tz_name: Optional[str],
        default_timezone: str = "UTC"
    ) -> Dict[str, EscalationTier]:
        """
        Tier for every record. Reads the records only; never mutates them.
        """
        return {
            record.case_id: QuietWindowEscalator.classify(
                record.case_id, record.last_activity_at, now,
                thresholds, schedule, tz_name, default_timezone
            )
            for record in records
        }
