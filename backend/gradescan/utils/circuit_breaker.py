"""
Per-service circuit breakers for external calls (OCR, mark detection, LLM parsing).
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from gradescan.config import logger
from gradescan.errors import ServiceUnavailable


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """
    Wraps async calls to one named external service.

    CLOSED -> OPEN after failure_threshold consecutive failures. While OPEN,
    calls raise ServiceUnavailable without touching the service. Once
    recovery_timeout_ms has passed since the last failure the next call goes
    through as a HALF_OPEN probe: success closes the breaker, failure reopens it.
    No retries happen here.
    """

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = 3,
        recovery_timeout_ms: int = 30000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.recovery_timeout_ms = recovery_timeout_ms
        self._clock = clock
        self.failure_count = 0
        self.last_failure_timestamp: Optional[float] = None
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        return self._state

    def _recovery_elapsed(self) -> bool:
        if self.last_failure_timestamp is None:
            return True
        elapsed_ms = (self._clock() - self.last_failure_timestamp) * 1000
        return elapsed_ms >= self.recovery_timeout_ms

    def before_call(self):
        """Raise ServiceUnavailable if the call must not go through."""
        if self._state == CircuitState.OPEN:
            if self._recovery_elapsed():
                self._state = CircuitState.HALF_OPEN
                logger.info(f"{self.service_name} circuit breaker moving to HALF_OPEN state")
            else:
                raise ServiceUnavailable(self.service_name)

    async def call(self, operation: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        self.before_call()
        try:
            result = await operation(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def record_success(self):
        if self._state != CircuitState.CLOSED:
            logger.info(f"✅ {self.service_name} circuit breaker reset to CLOSED state")
        self.failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self):
        self.failure_count += 1
        self.last_failure_timestamp = self._clock()
        if self._state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"⚠️ {self.service_name} circuit breaker opened after {self.failure_count} failure(s)"
                )
            self._state = CircuitState.OPEN

    def reset(self):
        self.failure_count = 0
        self.last_failure_timestamp = None
        self._state = CircuitState.CLOSED

    def snapshot(self) -> Dict[str, Any]:
        return {
            "service": self.service_name,
            "state": self._state.value,
            "failure_count": self.failure_count,
            "last_failure_timestamp": self.last_failure_timestamp,
        }


class CircuitBreakerRegistry:
    """One breaker per service name, all sharing the same policy."""

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout_ms: int = 30000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout_ms = recovery_timeout_ms
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, service_name: str) -> CircuitBreaker:
        breaker = self._breakers.get(service_name)
        if breaker is None:
            breaker = CircuitBreaker(
                service_name,
                failure_threshold=self.failure_threshold,
                recovery_timeout_ms=self.recovery_timeout_ms,
                clock=self._clock,
            )
            self._breakers[service_name] = breaker
        return breaker

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {name: b.snapshot() for name, b in self._breakers.items()}
