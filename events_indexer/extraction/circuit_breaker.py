"""Circuit breaker guarding calls to the extraction service.

CLOSED: calls pass, consecutive failures counted.
OPEN: calls rejected with CircuitOpenError until the recovery timeout passes.
HALF_OPEN: one probe call; success closes, failure reopens.
"""

import enum
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised instead of calling through an open circuit."""


class CircuitBreaker:
    """Failure-counting breaker for one remote dependency.

    Args:
        failure_threshold: Consecutive failures that open the circuit.
        recovery_timeout: Seconds to stay open before allowing a probe.
        name: Label used in log lines.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "extraction",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def before_call(self) -> None:
        """Admit or reject a call, moving OPEN to HALF_OPEN once the timeout passed."""
        if self._state is not CircuitState.OPEN:
            return
        if self._clock() - self._opened_at < self._recovery_timeout:
            raise CircuitOpenError(f"Circuit {self._name} is open")
        self._state = CircuitState.HALF_OPEN
        logger.info("Circuit %s half-open, sending probe", self._name)

    def record_success(self) -> None:
        if self._state is CircuitState.HALF_OPEN:
            logger.info("Circuit %s closed after successful probe", self._name)
        self._state = CircuitState.CLOSED
        self._failures = 0

    def record_failure(self) -> None:
        self._failures += 1
        if self._state is CircuitState.HALF_OPEN or (
            self._failures >= self._failure_threshold
        ):
            if self._state is not CircuitState.OPEN:
                logger.warning(
                    "Circuit %s opened after %d consecutive failures",
                    self._name,
                    self._failures,
                )
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run fn through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open.
        """
        self.before_call()
        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
