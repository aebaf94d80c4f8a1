"""Scheduled job registry.

Jobs are stored definitions (name, cron schedule, enabled flag, parameters,
last run). ``trigger`` runs a job's handler regardless of ``is_enabled``;
schedule-driven callers such as :class:`~newsdesk.jobs.scheduler.JobScheduler`
check the flag first.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import pendulum
from croniter import croniter
from pydantic import ValidationError as PydanticValidationError

from ..db.base import JobStore
from ..errors import InvalidJobParametersError, JobNotFoundError, TriggerError
from ..models import (
    BatchOperationResult,
    JobExecution,
    JobParameters,
    JobSettings,
    PromptDefinition,
    ScheduledJob,
)
from .handlers import JobHandler

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_SCHEDULE = "0 8 * * *"


def validate_schedule(schedule: Optional[str]) -> str:
    if not schedule or not croniter.is_valid(schedule):
        raise InvalidJobParametersError(f"Invalid cron expression: {schedule!r}")
    return schedule


def validate_parameters(parameters: Mapping[str, Any]) -> JobParameters:
    try:
        return JobParameters.model_validate(dict(parameters))
    except PydanticValidationError as e:
        raise InvalidJobParametersError(f"Invalid job parameters: {e}") from e


class JobRegistry:
    """Create, toggle and run scheduled jobs."""

    def __init__(
        self,
        store: JobStore,
        handlers: Mapping[str, JobHandler],
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.handlers = dict(handlers)
        self.clock = clock or (lambda: pendulum.now("UTC"))

    async def get(self, name: str) -> ScheduledJob:
        job = await self.store.get_job(name)
        if job is None:
            raise JobNotFoundError(name)
        return job

    async def list(self) -> List[ScheduledJob]:
        return await self.store.list_jobs()

    async def upsert(
        self,
        name: str,
        settings: Union[JobSettings, Mapping[str, Any]],
    ) -> ScheduledJob:
        """Create ``name`` or update its definition in place.

        Omitted settings keep their stored values. ``last_run`` is never touched.
        """
        if not isinstance(settings, JobSettings):
            try:
                settings = JobSettings.model_validate(dict(settings))
            except PydanticValidationError as e:
                raise InvalidJobParametersError(f"Invalid job settings: {e}") from e

        if not name or not name.strip():
            raise InvalidJobParametersError("Job name must not be empty")

        existing = await self.store.get_job(name)
        if existing is not None:
            base = existing.model_dump(include={"job_type", "schedule", "is_enabled", "parameters"})
        else:
            base = {"job_type": "news_import", "schedule": None, "is_enabled": True, "parameters": {}}
        base.update(settings.model_dump(exclude_none=True))

        validate_schedule(base["schedule"])
        if base["job_type"] not in self.handlers:
            known = ", ".join(sorted(self.handlers))
            raise InvalidJobParametersError(
                f"Unknown job type '{base['job_type']}' (expected one of: {known})"
            )
        parameters = validate_parameters(base["parameters"])
        base["parameters"] = parameters.model_dump(exclude_unset=True)

        job = await self.store.upsert_job(ScheduledJob(name=name, **base))
        logger.info("%s job '%s' (%s)", "Updated" if existing else "Created", name, job.schedule)
        return job

    async def toggle(self, name: str, enabled: Optional[bool] = None) -> ScheduledJob:
        """Set ``is_enabled``, or flip it when ``enabled`` is None."""
        if enabled is None:
            enabled = not (await self.get(name)).is_enabled
        job = await self.store.set_enabled(name, enabled)
        logger.info("Job '%s' %s", name, "enabled" if enabled else "disabled")
        return job

    async def record_run(
        self,
        name: str,
        timestamp: datetime,
        result: Optional[Dict[str, Any]] = None,
    ) -> ScheduledJob:
        return await self.store.record_run(name, timestamp, result)

    async def delete(self, name: str) -> bool:
        deleted = await self.store.delete_job(name)
        if deleted:
            logger.info("Deleted job '%s'", name)
        return deleted

    async def history(self, name: Optional[str] = None, limit: int = 20) -> List[JobExecution]:
        return await self.store.list_executions(name, limit)

    async def trigger(self, name: str, triggered_by: str = "manual") -> BatchOperationResult:
        """Run the job now and record the completed run.

        Item-level failures are part of the result and still count as a
        completed run. If the handler raises, the execution is logged as an
        error, ``last_run`` is left alone and TriggerError is raised. Stored
        parameters that no longer validate raise InvalidJobParametersError.
        """
        job = await self.get(name)
        handler = self.handlers.get(job.job_type)
        if handler is None:
            raise TriggerError(name, f"no handler for job type '{job.job_type}'")

        execution = await self.store.add_execution(
            JobExecution(job_name=name, started_at=self.clock(), triggered_by=triggered_by)
        )
        logger.info("Running job '%s' (%s, %s)", name, job.job_type, triggered_by)

        try:
            parameters = validate_parameters(job.parameters)
        except InvalidJobParametersError as e:
            await self.store.finish_execution(execution.id, "error", self.clock(), error_message=str(e))
            logger.error("Job '%s' has invalid parameters: %s", name, e)
            raise

        try:
            result = await handler.run(job, parameters)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            await self.store.finish_execution(
                execution.id, "error", self.clock(), error_message=message
            )
            logger.error("Job '%s' failed: %s", name, message)
            raise TriggerError(name, message) from e

        finished = self.clock()
        summary = result.summary()
        await self.record_run(name, finished, summary)
        await self.store.finish_execution(
            execution.id, "success" if result.ok else "partial", finished, summary=summary
        )
        logger.info(
            "Job '%s' completed: %d succeeded, %d failed",
            name, result.success_count, result.error_count,
        )
        return result

    async def provision_from_prompt(self, prompt: PromptDefinition) -> ScheduledJob:
        """Create or update the ``news_import`` job driven by ``prompt``."""
        if not prompt.id:
            raise InvalidJobParametersError("Prompt must be saved before provisioning a job")

        parameters = dict(prompt.parameters)
        parameters["prompt_id"] = prompt.id
        return await self.upsert(
            prompt.job_name,
            JobSettings(
                job_type="news_import",
                schedule=prompt.schedule or DEFAULT_IMPORT_SCHEDULE,
                is_enabled=prompt.is_active,
                parameters=parameters,
            ),
        )
