"""
Background Scheduler Protocol

Deferred execution contract: work handed to `schedule` runs after the caller
has returned its response, and the host guarantees it runs to completion.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

BackgroundJob = Callable[[], Awaitable[object]]


@runtime_checkable
class BackgroundScheduler(Protocol):
    """
    Fire-and-forget scheduling from the caller's perspective.

    Implementations:
    - FastAPIBackgroundScheduler: Starlette BackgroundTasks (after response)
    - RecordingScheduler in the test suite: collects jobs for explicit runs
    """

    def schedule(self, job: BackgroundJob, name: str) -> None:
        """Schedule job; `name` is used for logging only."""
        ...
