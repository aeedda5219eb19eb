"""
Deferred work execution.

Promotion, refill and download tracking run after the response is produced.
Failures there must never reach the caller, so every job goes through
`run_guarded`, which logs and counts the failure and returns normally.
"""

from starlette.background import BackgroundTasks

from src.core.config.constants import Stage
from src.core.interfaces.scheduler import BackgroundJob
from src.core.logging.logger import get_logger, get_thread_id, set_thread_id
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator

logger = get_logger(__name__)


async def run_guarded(
    job: BackgroundJob,
    name: str,
    thread_id: str | None,
    metrics: MetricsAccumulator,
) -> None:
    """
    Run a background job, absorbing any exception.

    The thread id of the request that scheduled the job is restored so the
    job's logs correlate with it.
    """
    if thread_id:
        set_thread_id(thread_id)

    try:
        await job()
        logger.debug("Background job complete", stage=Stage.BACKGROUND.value, job=name)
    except Exception as e:
        metrics.increment("background_failures")
        logger.error(
            "Background job failed",
            stage=Stage.BACKGROUND.value,
            job=name,
            error_type=type(e).__name__,
            error=str(e),
            exc_info=True,
        )


class FastAPIBackgroundScheduler:
    """
    Schedules jobs onto a request's Starlette `BackgroundTasks`.

    Starlette runs them after the response has been sent and keeps the
    request alive until they finish.
    """

    def __init__(self, background_tasks: BackgroundTasks, metrics: MetricsAccumulator):
        self._background_tasks = background_tasks
        self._metrics = metrics

    def schedule(self, job: BackgroundJob, name: str) -> None:
        self._background_tasks.add_task(run_guarded, job, name, get_thread_id(), self._metrics)

