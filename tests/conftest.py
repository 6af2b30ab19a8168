"""
Shared pytest fixtures for the health & escalation test suite.
"""
from datetime import datetime

import pytest

from src.escalation.domain import BusinessSchedule, QuietThresholdConfig, resolve_timezone
from tests.helpers import BUSINESS_NOW


@pytest.fixture
def t0() -> datetime:
    return BUSINESS_NOW


@pytest.fixture
def thresholds() -> QuietThresholdConfig:
    return QuietThresholdConfig(
        businessWarningHours=12,
        businessAlertHours=24,
        offHoursWarningHours=36,
        offHoursAlertHours=72,
    )


@pytest.fixture
def schedule() -> BusinessSchedule:
    return BusinessSchedule.default()


@pytest.fixture(autouse=True)
def _clear_timezone_cache():
    """Timezone fallback is logged once per name; reset between tests."""
    resolve_timezone.cache_clear()
    yield
    resolve_timezone.cache_clear()
