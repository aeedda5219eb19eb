"""
Unit Tests for Background Scheduling

Background failures must be absorbed (logged and counted), never raised.
"""

import pytest
from starlette.background import BackgroundTasks

from src.core.logging.logger import clear_thread_id, get_thread_id, set_thread_id
from src.photo_cache.services.background import FastAPIBackgroundScheduler, run_guarded


@pytest.mark.unit
class TestRunGuarded:
    @pytest.mark.asyncio
    async def test_runs_job(self, metrics):
        ran = []

        async def job():
            ran.append(True)

        await run_guarded(job, "job", None, metrics)

        assert ran == [True]
        assert "background_failures" not in metrics.pending

    @pytest.mark.asyncio
    async def test_failure_absorbed_and_counted(self, metrics):
        async def job():
            raise RuntimeError("refill exploded")

        await run_guarded(job, "refresh_system", None, metrics)

        assert metrics.pending["background_failures"] == 1

    @pytest.mark.asyncio
    async def test_restores_thread_id(self, metrics):
        seen = []

        async def job():
            seen.append(get_thread_id())

        clear_thread_id()
        await run_guarded(job, "job", "req-42", metrics)

        assert seen == ["req-42"]
        clear_thread_id()


@pytest.mark.unit
class TestFastAPIBackgroundScheduler:
    @pytest.mark.asyncio
    async def test_schedules_onto_background_tasks(self, metrics):
        tasks = BackgroundTasks()
        scheduler = FastAPIBackgroundScheduler(tasks, metrics)
        ran = []

        async def job():
            ran.append(get_thread_id())

        set_thread_id("req-1")
        scheduler.schedule(job, "job")
        clear_thread_id()

        assert len(tasks.tasks) == 1
        assert ran == []

        await tasks()

        assert ran == ["req-1"]
        clear_thread_id()

