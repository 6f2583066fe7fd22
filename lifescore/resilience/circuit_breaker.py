"""Circuit breaker for the external text completion provider

Stops hammering the provider when it is failing, so narrative enrichment
degrades to the deterministic path immediately instead of waiting on
timeouts.

State Machine:
    CLOSED (normal) → OPEN (failing fast) → HALF_OPEN (testing) → CLOSED/OPEN
"""

import pybreaker
import logging
from typing import Callable, Any, TypeVar
from functools import wraps

from lifescore.resilience.metrics import record_api_failure, record_circuit_breaker_state

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes and emits metrics"""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        logger.warning(
            f"[CIRCUIT_BREAKER] {cb.name}: {old_state.name} → {new_state.name}"
        )
        record_circuit_breaker_state(cb.name, new_state.name.lower().replace("-", "_"))

    def failure(self, cb: pybreaker.CircuitBreaker, exc: Exception) -> None:
        logger.error(
            f"[CIRCUIT_BREAKER] {cb.name} recorded failure: {type(exc).__name__}: {exc}"
        )
        record_api_failure(cb.name, type(exc).__name__)

    def success(self, cb: pybreaker.CircuitBreaker) -> None:
        logger.debug(f"[CIRCUIT_BREAKER] {cb.name} recorded success")


def create_breaker(name: str, fail_max: int = 5, reset_timeout: int = 60) -> pybreaker.CircuitBreaker:
    """Breaker with the standard listener attached"""
    return pybreaker.CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=name,
        listeners=[CircuitBreakerListener()]
    )


# 5 failures trips the breaker, 60s before HALF_OPEN
LLM_BREAKER = create_breaker("llm_api")


def with_circuit_breaker(breaker: pybreaker.CircuitBreaker) -> Callable:
    """
    Decorator to wrap async functions with circuit breaker protection.

    When the circuit is OPEN, calls fail immediately with CircuitBreakerError
    instead of calling the underlying function.

    Example:
        @with_circuit_breaker(LLM_BREAKER)
        async def call_llm():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await breaker.call_async(func, *args, **kwargs)
            except pybreaker.CircuitBreakerError:
                logger.warning(f"[CIRCUIT_BREAKER] {breaker.name} is OPEN - failing fast")
                raise
        return wrapper
    return decorator
