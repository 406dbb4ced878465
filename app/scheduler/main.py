"""
Agent Scheduler
Runs the decision cycle on a fixed interval and on manual demand.

Both trigger sources share one SingleFlightGuard: at most one cycle is in
flight at any time. Timer ticks that land on a busy guard are skipped;
manual triggers are rejected with CycleInProgressError (never queued).
"""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import pytz

from app.config import settings
from app.domain.errors import CycleInProgressError
from app.domain.models import CycleOutcome
from app.domain.services.cycle_orchestrator import CycleOrchestrator

logger = logging.getLogger(__name__)

CYCLE_JOB_ID = "agent_cycle"


class SingleFlightGuard:
    """Non-blocking in-progress flag for one event loop."""

    def __init__(self):
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        # No await between check and set, so this is atomic on the loop
        if self._busy:
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False


class AgentScheduler:
    """
    Agent Scheduler
    Fixed-interval timer + manual trigger around CycleOrchestrator.run_once()
    """

    def __init__(
        self,
        orchestrator: CycleOrchestrator,
        interval_minutes: int = 5,
        timezone: str = "UTC",
        guard: SingleFlightGuard | None = None,
    ):
        self.orchestrator = orchestrator
        self.interval_minutes = interval_minutes
        self.guard = guard or SingleFlightGuard()
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(timezone))
        self.last_outcome: CycleOutcome | None = None

    @property
    def running(self) -> bool:
        return bool(getattr(self.scheduler, "running", False))

    @property
    def cycle_in_progress(self) -> bool:
        return self.guard.busy

    async def scheduled_cycle(self) -> CycleOutcome | None:
        """Timer path: skip the tick if a cycle is already running."""
        if not self.guard.try_acquire():
            logger.warning("⏭️  Skipping scheduled cycle - previous cycle still running")
            return None
        try:
            logger.info("⏰ Scheduled agent cycle")
            return await self._run()
        finally:
            self.guard.release()

    async def trigger_now(self) -> CycleOutcome:
        """Manual path: run one cycle now or raise if one is active."""
        if not self.guard.try_acquire():
            logger.warning("Manual trigger rejected - cycle already running")
            raise CycleInProgressError("A decision cycle is already running")
        try:
            logger.info("🖐️  Manual agent cycle triggered")
            return await self._run()
        finally:
            self.guard.release()

    async def _run(self) -> CycleOutcome:
        outcome = await self.orchestrator.run_once()
        self.last_outcome = outcome
        logger.info("Cycle finished: %s %s", outcome.status.value, outcome.detail)
        return outcome

    def start(self):
        """Start the scheduler"""
        logger.info("🚀 Starting agent scheduler (every %s min)...", self.interval_minutes)

        self.scheduler.add_job(
            self.scheduled_cycle,
            IntervalTrigger(minutes=self.interval_minutes),
            id=CYCLE_JOB_ID,
            name="Agent Decision Cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info("✅ Scheduler started successfully")

        for job in self.scheduler.get_jobs():
            logger.info("  • %s - Next run: %s", job.name, job.next_run_time)

    def stop(self):
        """Stop the scheduler"""
        if not self.running:
            return
        logger.info("🛑 Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        logger.info("✅ Scheduler stopped")


async def main():
    """Run the scheduler standalone (no HTTP surface)."""
    from app.core.logging import setup_logging
    from app.infrastructure.db.database import close_db, init_db
    from app.services.agent_service import AgentService

    setup_logging(settings.LOG_LEVEL)
    await init_db()

    service = AgentService.from_settings(settings)
    service.scheduler.start()

    try:
        while True:
            await asyncio.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        service.scheduler.stop()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
