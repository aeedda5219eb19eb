"""
Circuit Breaker for the upstream photo provider.

MECHANISM OF ACTION:
-------------------
1.  **Process-local State**:
    State lives in memory. Each instance decides on its own whether the
    provider is reachable; nothing is shared through the store.

2.  **State Transitions**:
    - **CLOSED**: The provider is healthy. Calls are allowed.
      - On Failure: failure counter increments.
      - On Success: failure counter resets to 0.
      - Threshold Reached: failures >= threshold → OPEN.

    - **OPEN**: Calls fail fast with `CircuitBreakerOpenError`.
      - Recovery: after `recovery_timeout` seconds the next call is let
        through as a probe (HALF-OPEN).

    - **HALF-OPEN**: One probe call in flight.
      - On Success: → CLOSED.
      - On Failure: → OPEN, and the timeout restarts.

3.  **What counts as a failure**:
    Only `UpstreamError` (non-2xx, timeout, transport). Anything else
    raised by the wrapped call is a programming error and passes through
    without touching the breaker.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from src.core.config.constants import CircuitState, Stage
from src.core.exceptions import CircuitBreakerOpenError, UpstreamError
from src.core.logging.logger import get_logger
from src.infrastructure.monitoring.metrics_collector import CIRCUIT_BREAKER_STATE

logger = get_logger(__name__)

T = TypeVar("T")

_STATE_GAUGE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


class CircuitBreaker:
    """
    In-process circuit breaker.

    Usage:
        breaker = CircuitBreaker("unsplash", failure_threshold=3, recovery_timeout=30)
        photos = await breaker.call(client.get_random, params)
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False
        self._publish_state()

    @property
    def state(self) -> CircuitState:
        """Current state; OPEN reads as HALF_OPEN once the recovery timeout has elapsed."""
        if self._state is CircuitState.OPEN and self._recovery_elapsed():
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def _recovery_elapsed(self) -> bool:
        return (
            self._opened_at is not None
            and self._clock() - self._opened_at >= self._recovery_timeout
        )

    def _set_state(self, state: CircuitState) -> None:
        if state is self._state:
            return
        logger.info(
            "Circuit state changed",
            stage=Stage.CIRCUIT_BREAKER.value,
            circuit=self.name,
            old_state=self._state.value,
            new_state=state.value,
        )
        self._state = state
        self._publish_state()

    def _publish_state(self) -> None:
        CIRCUIT_BREAKER_STATE.labels(name=self.name).set(_STATE_GAUGE_VALUES[self._state])

    def before_call(self) -> None:
        """
        Gate a call.

        Raises:
            CircuitBreakerOpenError: Circuit open, or a probe is already in flight
        """
        if self._state is CircuitState.CLOSED:
            return

        if self._state is CircuitState.OPEN and self._recovery_elapsed():
            self._set_state(CircuitState.HALF_OPEN)

        if self._state is CircuitState.HALF_OPEN and not self._probe_in_flight:
            self._probe_in_flight = True
            logger.info(
                "Circuit probe allowed",
                stage=Stage.CIRCUIT_BREAKER.value,
                circuit=self.name,
            )
            return

        raise CircuitBreakerOpenError(
            "Circuit breaker is open",
            details={"circuit": self.name, "failures": self._failures},
        )

    def record_success(self) -> None:
        self._probe_in_flight = False
        self._failures = 0
        self._opened_at = None
        self._set_state(CircuitState.CLOSED)

    def record_failure(self) -> None:
        self._probe_in_flight = False
        self._failures += 1
        logger.warning(
            "Circuit recorded failure",
            stage=Stage.CIRCUIT_BREAKER.value,
            circuit=self.name,
            failures=self._failures,
            threshold=self._failure_threshold,
        )

        if self._state is CircuitState.HALF_OPEN or self._failures >= self._failure_threshold:
            self._opened_at = self._clock()
            self._set_state(CircuitState.OPEN)

    def reset(self) -> None:
        """Force CLOSED (tests, admin)."""
        self.record_success()

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run `func` through the breaker."""
        self.before_call()
        try:
            result = await func(*args, **kwargs)
        except UpstreamError:
            self.record_failure()
            raise
        except BaseException:
            # Not a provider failure; release the probe slot without judging the provider
            self._probe_in_flight = False
            raise
        self.record_success()
        return result

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self._failures,
            "failure_threshold": self._failure_threshold,
            "recovery_timeout": self._recovery_timeout,
        }
