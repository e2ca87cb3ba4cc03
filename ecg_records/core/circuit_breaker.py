"""Circuit breaker for S3-backed calls.

The state machine lives in :func:`transition`, a pure function over an
immutable snapshot, so it can be tested without clocks or network calls.
:class:`CircuitBreaker` is the thin async wrapper that feeds it events.
"""

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import structlog

from ..errors import CircuitOpenError
from ..types import Logger

logger: Logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class BreakerEvent(str, Enum):
    REQUEST = "request"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class BreakerOptions:
    failure_threshold: int = 5
    reset_timeout: float = 60.0


@dataclass(frozen=True)
class BreakerSnapshot:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    last_failure_time: float = 0.0

    @property
    def allows_request(self) -> bool:
        return self.state is not CircuitState.OPEN


def transition(
    snapshot: BreakerSnapshot,
    event: BreakerEvent,
    now: float,
    options: BreakerOptions
) -> BreakerSnapshot:
    """Compute the next breaker snapshot.

    - REQUEST: an OPEN breaker whose reset timeout elapsed moves to HALF_OPEN.
    - SUCCESS: back to CLOSED with the failure count cleared.
    - FAILURE: count it; open once the threshold is reached, or at once
      when the trial call in HALF_OPEN fails.
    """
    if event is BreakerEvent.REQUEST:
        if (
            snapshot.state is CircuitState.OPEN
            and now - snapshot.last_failure_time >= options.reset_timeout
        ):
            return replace(snapshot, state=CircuitState.HALF_OPEN)
        return snapshot

    if event is BreakerEvent.SUCCESS:
        return BreakerSnapshot()

    failures = snapshot.failures + 1
    if snapshot.state is CircuitState.HALF_OPEN or failures >= options.failure_threshold:
        state = CircuitState.OPEN
    else:
        state = snapshot.state
    return BreakerSnapshot(state=state, failures=failures, last_failure_time=now)


class CircuitBreaker:
    """Async wrapper that routes calls through the breaker state machine."""

    def __init__(
        self,
        name: str,
        options: Optional[BreakerOptions] = None,
        exclude: Tuple[Type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.options = options or BreakerOptions()
        self.exclude = exclude
        self._clock = clock
        self._snapshot = BreakerSnapshot()

    @property
    def state(self) -> CircuitState:
        return self._snapshot.state

    @property
    def failure_count(self) -> int:
        return self._snapshot.failures

    def reset(self) -> None:
        self._snapshot = BreakerSnapshot()

    def _apply(self, event: BreakerEvent) -> None:
        before = self._snapshot.state
        self._snapshot = transition(self._snapshot, event, self._clock(), self.options)
        if self._snapshot.state is not before:
            logger.warning(
                "Circuit breaker state changed",
                breaker=self.name,
                from_state=before.value,
                to_state=self._snapshot.state.value,
                failures=self._snapshot.failures,
            )

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], Awaitable[T]]] = None
    ) -> T:
        """Run ``fn`` under breaker protection.

        Raises:
            CircuitOpenError: The breaker is open and there is no fallback
        """
        self._apply(BreakerEvent.REQUEST)
        if not self._snapshot.allows_request:
            if fallback is not None:
                logger.warning("Circuit breaker OPEN, using fallback", breaker=self.name)
                return await fallback()
            raise CircuitOpenError(f"Circuit breaker '{self.name}' is OPEN")

        try:
            result = await fn()
        except self.exclude:
            # expected outcomes such as "not found" say nothing about backend health
            self._apply(BreakerEvent.SUCCESS)
            raise
        except Exception:
            self._apply(BreakerEvent.FAILURE)
            if fallback is not None and not self._snapshot.allows_request:
                logger.warning("Circuit breaker OPEN after failure, using fallback", breaker=self.name)
                return await fallback()
            raise

        self._apply(BreakerEvent.SUCCESS)
        return result
