"""Schedule-driven job runner."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import pendulum
from croniter import croniter

from ..errors import InvalidJobParametersError, TriggerError
from ..models import BatchOperationResult, ScheduledJob
from .registry import JobRegistry

logger = logging.getLogger(__name__)


class JobScheduler:
    """Polls the registry and triggers enabled jobs whose cron slot has passed.

    A job is due when the first slot after its last run (or creation, if it
    never ran) is at or before ``now``. Missed slots collapse into one run,
    and a failed scheduled run waits for the following slot.
    """

    def __init__(
        self,
        registry: JobRegistry,
        timezone_name: str = "UTC",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.registry = registry
        self.tz = pendulum.timezone(timezone_name)
        self.clock = clock or (lambda: pendulum.now("UTC"))
        self._failed_at: Dict[str, datetime] = {}

    def next_run(self, job: ScheduledJob, now: datetime) -> datetime:
        base = job.last_run or job.created_at or now
        failed_at = self._failed_at.get(job.name)
        if failed_at is not None and (job.last_run is None or failed_at > job.last_run):
            base = failed_at
        if base.tzinfo is None:
            base = base.replace(tzinfo=timezone.utc)
        return croniter(job.schedule, base.astimezone(self.tz)).get_next(datetime)

    def is_due(self, job: ScheduledJob, now: datetime) -> bool:
        if not job.is_enabled:
            return False
        return self.next_run(job, now) <= now

    async def run_due(self, now: Optional[datetime] = None) -> Dict[str, Optional[BatchOperationResult]]:
        """Trigger every due job once; failed triggers map to None."""
        now = now or self.clock()
        results: Dict[str, Optional[BatchOperationResult]] = {}

        for job in await self.registry.list():
            if not self.is_due(job, now):
                continue
            try:
                results[job.name] = await self.registry.trigger(job.name, triggered_by="schedule")
            except (TriggerError, InvalidJobParametersError) as e:
                # Not retried until the following slot.
                logger.error("Scheduled run of '%s' failed: %s", job.name, e)
                self._failed_at[job.name] = now
                results[job.name] = None
        return results

    async def run_forever(self, poll_interval: float = 60.0) -> None:
        logger.info("Scheduler started (polling every %.0fs)", poll_interval)
        while True:
            await self.run_due()
            await asyncio.sleep(poll_interval)
