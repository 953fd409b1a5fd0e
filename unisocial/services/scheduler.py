"""
Background Job Scheduler Service

This service runs periodic maintenance inside the API process:
- Refreshing scheduled posts from Late once their time has passed
- Expiring subscriptions cancelled at the end of their period
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.database import async_session
from unisocial.integrations.late import LateClient
from unisocial.integrations.portone import PortOneClient
from unisocial.services.publishing import PublishingService
from unisocial.services.subscription import SubscriptionService

TICK_SECONDS = 30


class BackgroundScheduler:
    """Background job scheduler for automated tasks."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        late: Optional[LateClient] = None,
        portone: Optional[PortOneClient] = None,
    ):
        """Initialize scheduler with its session factory and vendor clients."""
        self.logger = structlog.get_logger(__name__)
        self.session_factory = session_factory or async_session
        self.late = late or LateClient()
        self.portone = portone or PortOneClient()

        # Job control
        self.is_running = False
        self.job_intervals = {
            "refresh_scheduled_posts": 60,    # Every 1 minute
            "expire_subscriptions": 3600,     # Every 1 hour
        }
        self.last_run: Dict[str, datetime] = {}
        self.last_result: Dict[str, Any] = {}

    async def start(self):
        """Start the background scheduler."""
        if self.is_running:
            self.logger.warning("Scheduler already running")
            return

        self.is_running = True
        self.logger.info("Starting background scheduler", jobs=list(self.job_intervals))
        await self._run_scheduler_loop()

    async def stop(self):
        """Stop the background scheduler."""
        self.is_running = False
        self.logger.info("Stopping background scheduler")

    async def _run_scheduler_loop(self):
        """Main scheduler loop."""
        while self.is_running:
            try:
                await self._check_and_run_jobs(datetime.utcnow())
                await asyncio.sleep(TICK_SECONDS)
            except asyncio.CancelledError:
                self.is_running = False
                raise
            except Exception as e:
                self.logger.error("Scheduler loop error", error=str(e), exc_info=True)
                await asyncio.sleep(TICK_SECONDS * 2)

    def _due_jobs(self, current_time: datetime):
        due = []
        for job_name, interval_seconds in self.job_intervals.items():
            last_run = self.last_run.get(job_name)
            if not last_run or (current_time - last_run).total_seconds() >= interval_seconds:
                due.append(job_name)
        return due

    async def _check_and_run_jobs(self, current_time: datetime):
        """Check which jobs need to run and execute them."""
        jobs_to_run = self._due_jobs(current_time)
        if not jobs_to_run:
            return

        self.logger.debug("Running scheduled jobs", jobs=jobs_to_run)
        # Jobs use separate sessions, so they may run side by side
        await asyncio.gather(*(self._run_job(job_name, current_time) for job_name in jobs_to_run))

    async def _run_job(self, job_name: str, current_time: datetime) -> Any:
        """Run a specific job and remember when it ran."""
        try:
            if job_name == "refresh_scheduled_posts":
                result = await self._refresh_scheduled_posts_job(current_time)
            elif job_name == "expire_subscriptions":
                result = await self._expire_subscriptions_job(current_time)
            else:
                raise ValueError(f"Unknown job: {job_name}")
        except Exception as e:
            self.logger.error("Job failed", job=job_name, error=str(e), exc_info=True)
            result = {"error": str(e)}

        self.last_run[job_name] = current_time
        self.last_result[job_name] = result
        if result:
            self.logger.info("Job completed", job=job_name, result=result)
        return result

    async def _refresh_scheduled_posts_job(self, current_time: datetime) -> Dict[str, int]:
        if not self.late.configured:
            return {"changed": 0}
        async with self.session_factory() as session:
            publishing = PublishingService(session, self.late)
            return {"changed": await publishing.refresh_due_posts(current_time)}

    async def _expire_subscriptions_job(self, current_time: datetime) -> Dict[str, int]:
        async with self.session_factory() as session:
            subscriptions = SubscriptionService(session, self.portone)
            return {"expired": await subscriptions.expire_cancelled(current_time)}

    async def run_job_once(self, job_name: str) -> Dict[str, Any]:
        """Run a specific job once (for testing or manual triggering)."""
        if job_name not in self.job_intervals:
            raise ValueError(f"Unknown job: {job_name}")

        self.logger.info("Running job manually", job=job_name)

        current_time = datetime.utcnow()
        result = await self._run_job(job_name, current_time)

        return {"job": job_name, "status": "completed", "run_at": current_time, "result": result}

    def get_job_status(self) -> Dict[str, Any]:
        """Get current status of the scheduler and jobs."""
        current_time = datetime.utcnow()
        job_statuses = {}

        for job_name, interval_seconds in self.job_intervals.items():
            last_run = self.last_run.get(job_name)
            if last_run:
                time_since_last_run = (current_time - last_run).total_seconds()
                next_run_in = max(0, interval_seconds - time_since_last_run)
            else:
                time_since_last_run = None
                next_run_in = 0

            job_statuses[job_name] = {
                "interval_seconds": interval_seconds,
                "last_run": last_run,
                "time_since_last_run": time_since_last_run,
                "next_run_in": next_run_in,
                "last_result": self.last_result.get(job_name),
            }

        return {
            "is_running": self.is_running,
            "current_time": current_time,
            "jobs": job_statuses
        }
