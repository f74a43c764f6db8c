"""Circuit breaker guarding calls to the remote geospatial API"""
import time
import logging
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    """Raised instead of calling through while the breaker is open."""

    def __init__(self, name: str, retry_in: float):
        super().__init__(f"Circuit breaker {name} is OPEN (retry in {retry_in:.0f}s)")
        self.name = name
        self.retry_in = retry_in


class CircuitBreaker:
    """Opens after `failure_threshold` consecutive failures.

    Once `recovery_timeout` seconds have passed the circuit goes half-open and
    lets one trial call through at a time; calls made while a trial is in
    flight are rejected. `half_open_successes` successes close the circuit
    again and any failure re-opens it.

    `excluded_exceptions` are re-raised but count as a success: the remote
    side answered, it just refused the request.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        half_open_successes: int = 2,
        tracked_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        excluded_exceptions: Tuple[Type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_successes = half_open_successes
        self.tracked_exceptions = tracked_exceptions
        self.excluded_exceptions = excluded_exceptions
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self._trial_in_flight = False
        self._lock = Lock()

        self.stats = {
            'total_calls': 0,
            'successful_calls': 0,
            'failed_calls': 0,
            'rejected_calls': 0,
        }

    def call(self, func: Callable, *args, **kwargs) -> Any:
        with self._lock:
            self.stats['total_calls'] += 1
            if self.state == CircuitState.OPEN:
                elapsed = self._clock() - (self.last_failure_time or 0)
                if elapsed >= self.recovery_timeout:
                    self._transition_to(CircuitState.HALF_OPEN)
                else:
                    self.stats['rejected_calls'] += 1
                    raise CircuitOpenError(self.name, self.recovery_timeout - elapsed)
            trial = self.state == CircuitState.HALF_OPEN
            if trial:
                if self._trial_in_flight:
                    self.stats['rejected_calls'] += 1
                    raise CircuitOpenError(self.name, 0)
                self._trial_in_flight = True
        try:
            result = func(*args, **kwargs)
        except self.excluded_exceptions:
            self._on_success()
            raise
        except self.tracked_exceptions:
            self._on_failure()
            raise
        else:
            self._on_success()
        finally:
            if trial:
                with self._lock:
                    self._trial_in_flight = False
        return result

    def _on_success(self):
        with self._lock:
            self.stats['successful_calls'] += 1
            self.failure_count = 0
            if self.state == CircuitState.HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.half_open_successes:
                    self._transition_to(CircuitState.CLOSED)

    def _on_failure(self):
        with self._lock:
            self.stats['failed_calls'] += 1
            self.failure_count += 1
            self.success_count = 0
            self.last_failure_time = self._clock()
            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState):
        old = self.state
        self.state = new_state
        if new_state == CircuitState.CLOSED:
            self.failure_count = 0
            self.success_count = 0
        logger.info(f"Circuit breaker {self.name}: {old.value} -> {new_state.value}")

    def get_stats(self) -> Dict:
        with self._lock:
            return {
                'name': self.name,
                'state': self.state.value,
                'failure_count': self.failure_count,
                'stats': dict(self.stats),
            }

    def reset(self):
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.success_count = 0
            self.last_failure_time = None
            self._trial_in_flight = False
        logger.info(f"Circuit breaker {self.name} manually reset")


class CircuitBreakerRegistry:
    def __init__(self):
        self.breakers: Dict[str, CircuitBreaker] = {}

    def register(self, breaker: CircuitBreaker) -> CircuitBreaker:
        self.breakers[breaker.name] = breaker
        return breaker

    def get(self, name: str) -> Optional[CircuitBreaker]:
        return self.breakers.get(name)

    def get_all_stats(self) -> Dict[str, Dict]:
        return {n: b.get_stats() for n, b in self.breakers.items()}

    def reset_all(self):
        for b in self.breakers.values():
            b.reset()


circuit_breaker_registry = CircuitBreakerRegistry()
