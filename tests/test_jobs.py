"""Tests for the scheduled job registry, handlers and scheduler."""

import pendulum
import pytest

from newsdesk.batch import BatchProcessor, WordCountOperation
from newsdesk.errors import InvalidJobParametersError, JobNotFoundError, TriggerError
from newsdesk.jobs import BackfillHandler, JobHandler, JobRegistry, JobScheduler
from newsdesk.models import BatchOperationResult, ItemStatus, JobSettings, PromptDefinition, ScheduledJob

from conftest import add_item


class FakeHandler(JobHandler):
    job_type = "fake"

    def __init__(self, result=None, error=None):
        self.result = result or BatchOperationResult(operation="fake", success_count=2)
        self.error = error
        self.calls = []

    async def run(self, job, parameters):
        self.calls.append((job.name, parameters))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def handler():
    return FakeHandler()


@pytest.fixture
def registry(store, handler, clock):
    return JobRegistry(store, {"fake": handler}, clock=clock)


async def create(registry, name="daily", **settings):
    data = {"job_type": "fake", "schedule": "0 8 * * *"}
    data.update(settings)
    return await registry.upsert(name, JobSettings(**data))


@pytest.mark.asyncio
async def test_upsert_creates_then_updates_in_place(registry):
    job = await create(registry, parameters={"limit": 5})
    assert job.is_enabled
    assert job.parameters == {"limit": 5}
    assert job.last_run is None

    updated = await registry.upsert("daily", {"schedule": "30 9 * * 1-5"})
    assert updated.id == job.id
    assert updated.schedule == "30 9 * * 1-5"
    assert updated.parameters == {"limit": 5}
    assert len(await registry.list()) == 1


@pytest.mark.asyncio
async def test_upsert_never_changes_last_run(registry, clock):
    await create(registry)
    await registry.trigger("daily")
    ran_at = (await registry.get("daily")).last_run

    clock.advance(days=1)
    updated = await registry.upsert("daily", {"parameters": {"min_score": 0.5}, "is_enabled": False})

    assert updated.last_run == ran_at
    assert updated.is_enabled is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "settings",
    [
        {"schedule": "not a cron"},
        {"schedule": "61 * * * *"},
        {"parameters": {"limit": 0}},
        {"parameters": {"min_score": -1}},
        {"job_type": "unknown"},
    ],
)
async def test_upsert_rejects_invalid_settings(registry, settings):
    with pytest.raises(InvalidJobParametersError):
        await create(registry, **settings)
    assert await registry.list() == []


@pytest.mark.asyncio
async def test_new_job_needs_schedule(registry):
    with pytest.raises(InvalidJobParametersError):
        await registry.upsert("no-schedule", {"job_type": "fake"})


@pytest.mark.asyncio
async def test_unknown_parameters_are_kept(registry):
    job = await create(registry, parameters={"include_clusters": True})
    assert job.parameters == {"include_clusters": True}


@pytest.mark.asyncio
async def test_toggle_only_flips_enabled(registry):
    job = await create(registry, parameters={"limit": 3})

    disabled = await registry.toggle("daily", False)
    assert disabled.is_enabled is False
    assert disabled.schedule == job.schedule
    assert disabled.parameters == job.parameters

    assert (await registry.toggle("daily")).is_enabled is True


@pytest.mark.asyncio
async def test_missing_job(registry):
    with pytest.raises(JobNotFoundError):
        await registry.toggle("missing", True)
    with pytest.raises(JobNotFoundError):
        await registry.trigger("missing")


@pytest.mark.asyncio
async def test_disabled_job_can_be_triggered_manually(registry, handler, clock):
    await create(registry, is_enabled=False)

    result = await registry.trigger("daily")

    assert result.success_count == 2
    assert handler.calls and handler.calls[0][0] == "daily"
    job = await registry.get("daily")
    assert job.last_run == clock.now
    assert job.last_run_result == {"success": 2, "errors": 0}


@pytest.mark.asyncio
async def test_failed_trigger_leaves_last_run(store, clock):
    failing = FakeHandler(error=RuntimeError("search API down"))
    registry = JobRegistry(store, {"fake": failing}, clock=clock)
    await create(registry)

    with pytest.raises(TriggerError, match="search API down") as excinfo:
        await registry.trigger("daily")

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert (await registry.get("daily")).last_run is None

    history = await registry.history("daily")
    assert len(history) == 1
    assert history[0].status == "error"
    assert history[0].error_message == "search API down"


@pytest.mark.asyncio
async def test_invalid_stored_parameters_are_a_validation_error(store, registry, handler):
    # Written straight to the store, skipping upsert's validation.
    await store.upsert_job(
        ScheduledJob(name="daily", job_type="fake", schedule="0 8 * * *", parameters={"limit": 0})
    )

    with pytest.raises(InvalidJobParametersError):
        await registry.trigger("daily")

    assert handler.calls == []
    assert (await registry.get("daily")).last_run is None
    history = await registry.history("daily")
    assert [e.status for e in history] == ["error"]
    assert "limit" in history[0].error_message


@pytest.mark.asyncio
async def test_partial_failure_still_records_run(store, clock):
    partial = FakeHandler(
        result=BatchOperationResult(operation="fake", success_count=3, error_count=1)
    )
    registry = JobRegistry(store, {"fake": partial}, clock=clock)
    await create(registry)

    await registry.trigger("daily", triggered_by="schedule")

    assert (await registry.get("daily")).last_run == clock.now
    execution = (await registry.history("daily"))[0]
    assert execution.status == "partial"
    assert execution.triggered_by == "schedule"
    assert execution.summary == {"success": 3, "errors": 1}


@pytest.mark.asyncio
async def test_delete(registry):
    await create(registry)
    assert await registry.delete("daily") is True
    assert await registry.delete("daily") is False
    with pytest.raises(JobNotFoundError):
        await registry.get("daily")


@pytest.mark.asyncio
async def test_provision_from_prompt(store, clock):
    registry = JobRegistry(store, {"news_import": FakeHandler()}, clock=clock)
    prompt = await store.save_prompt(
        PromptDefinition(name="Housing Market", prompt_text="Find housing news", parameters={"limit": 5})
    )

    job = await registry.provision_from_prompt(prompt)

    assert job.name == "news-import-housing-market"
    assert job.job_type == "news_import"
    assert job.parameters == {"limit": 5, "prompt_id": prompt.id}

    prompt.is_active = False
    again = await registry.provision_from_prompt(prompt)
    assert again.id == job.id
    assert again.is_enabled is False


@pytest.mark.asyncio
async def test_backfill_handler_filters_by_status(store, clock):
    discovered = await add_item(store, "one two", word_count=0)
    dismissed = await add_item(store, "one two three", status=ItemStatus.DISMISSED, word_count=0)
    handler = BackfillHandler("word_count_backfill", store, BatchProcessor(), WordCountOperation(store))
    registry = JobRegistry(store, {"word_count_backfill": handler}, clock=clock)
    await registry.upsert(
        "wc",
        JobSettings(job_type="word_count_backfill", schedule="0 3 * * 0", parameters={"status": "pending"}),
    )

    result = await registry.trigger("wc")

    assert result.success_count == 1
    assert (await store.get_item(discovered.id)).word_count == 2
    assert (await store.get_item(dismissed.id)).word_count == 0


class TestScheduler:
    @pytest.fixture
    def scheduler(self, registry, clock):
        return JobScheduler(registry, clock=clock)

    @pytest.mark.asyncio
    async def test_disabled_jobs_are_never_triggered(self, registry, handler, scheduler, clock):
        await create(registry, schedule="* * * * *", is_enabled=False)

        clock.advance(hours=2)
        results = await scheduler.run_due()

        assert results == {}
        assert handler.calls == []

    @pytest.mark.asyncio
    async def test_due_job_runs_once_per_slot(self, registry, handler, scheduler, clock):
        await create(registry, schedule="0 * * * *")

        assert await scheduler.run_due() == {}

        clock.advance(hours=1)
        results = await scheduler.run_due()
        assert list(results) == ["daily"]
        assert results["daily"].success_count == 2

        assert await scheduler.run_due() == {}
        assert len(handler.calls) == 1
        execution = (await registry.history("daily"))[0]
        assert execution.triggered_by == "schedule"

    @pytest.mark.asyncio
    async def test_failed_run_waits_for_next_slot(self, store, clock):
        failing = FakeHandler(error=RuntimeError("down"))
        registry = JobRegistry(store, {"fake": failing}, clock=clock)
        scheduler = JobScheduler(registry, clock=clock)
        await create(registry, schedule="0 * * * *")

        clock.advance(hours=1)
        assert await scheduler.run_due() == {"daily": None}
        assert await scheduler.run_due() == {}

        clock.advance(hours=1)
        assert await scheduler.run_due() == {"daily": None}
        assert len(failing.calls) == 2

    def test_next_run_uses_last_run(self, scheduler):
        job = ScheduledJob(
            name="daily",
            schedule="0 8 * * *",
            last_run=pendulum.datetime(2024, 6, 3, 8, 0, 5),
        )
        assert scheduler.next_run(job, pendulum.datetime(2024, 6, 3, 9)) == pendulum.datetime(2024, 6, 4, 8)

    @pytest.mark.asyncio
    async def test_invalid_parameters_do_not_stop_other_jobs(self, store, registry, handler, scheduler, clock):
        await store.upsert_job(
            ScheduledJob(name="broken", job_type="fake", schedule="0 * * * *", parameters={"limit": 0})
        )
        await create(registry, schedule="0 * * * *")

        clock.advance(hours=1)
        results = await scheduler.run_due()

        assert results["broken"] is None
        assert results["daily"].success_count == 2
        assert [name for name, _ in handler.calls] == ["daily"]
