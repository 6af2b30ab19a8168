"""
Monitoring External Services
=============================

APScheduler wrapper driving the periodic parts of a monitoring session:
- finalizing heartbeat ticks whose deadline elapsed
- escalation sweeps whose tiers are handed to a callback
"""

from typing import Awaitable, Callable, Dict, List, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.config import EscalationTier
from src.monitoring.application.services import MonitoringSession
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

SweepCallback = Callable[[Dict[str, EscalationTier]], Union[None, Awaitable[None]]]


class MonitoringScheduler:
    """
    Manages the lifecycle of the scheduler and its jobs.

    The sweep callback is where a collaborator decides how to notify;
    the scheduler only delivers the tiers.
    """

    def __init__(
        self,
        session: MonitoringSession,
        tick_interval_seconds: int = 10,
        sweep_interval_seconds: int = 60,
        on_sweep: Optional[SweepCallback] = None,
    ):
        self.session = session
        self.tick_interval_seconds = tick_interval_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._on_sweep = on_sweep
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def tick_job(self) -> None:
        """Finalize a stale partial tick, if any."""
        self.session.flush_expired_tick()

    async def sweep_job(self) -> None:
        """Run one escalation sweep and hand the tiers over."""
        tiers = self.session.sweep_escalations()
        if self._on_sweep is None:
            return
        result = self._on_sweep(tiers)
        if result is not None:
            await result

    async def start(self) -> None:
        """
        Start the scheduler.

        The tick deadline job always runs; the escalation sweep job only
        when its interval is positive.
        """
        if self._running:
            logger.warning("Monitoring scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            self.tick_job,
            "interval",
            seconds=self.tick_interval_seconds,
            id="heartbeat_tick_deadline",
            name="Heartbeat Tick Deadline Job",
            misfire_grace_time=self.tick_interval_seconds,
            max_instances=1,
            replace_existing=True
        )
        if self.sweep_interval_seconds > 0:
            self._scheduler.add_job(
                self.sweep_job,
                "interval",
                seconds=self.sweep_interval_seconds,
                id="escalation_sweep",
                name="Escalation Sweep Job",
                misfire_grace_time=60,
                max_instances=1,
                replace_existing=True
            )
        else:
            logger.info("Escalation sweep job disabled (sweep interval is 0)")

        self._scheduler.start()
        self._running = True

        logger.info(
            "Monitoring scheduler started",
            extra={
                "tick_interval_seconds": self.tick_interval_seconds,
                "sweep_interval_seconds": self.sweep_interval_seconds,
                "jobs": self.job_ids,
            }
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None

        self._running = False
        logger.info("Monitoring scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @property
    def job_ids(self) -> List[str]:
        """Ids of the scheduled jobs (empty when not started)."""
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]
