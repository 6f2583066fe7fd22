"""Resilience patterns for the external text provider

Circuit breaker, retry with backoff, fallback orchestration and metrics.
"""

from lifescore.resilience.circuit_breaker import (
    LLM_BREAKER,
    CircuitBreakerListener,
    create_breaker,
    with_circuit_breaker,
)
from lifescore.resilience.retry import retry_with_backoff, with_retry, is_retryable_error
from lifescore.resilience.fallback import execute_with_fallbacks, FallbackStrategy
from lifescore.resilience.metrics import (
    record_circuit_breaker_state,
    record_api_call,
    record_api_failure,
    record_retry,
    record_fallback,
)

__all__ = [
    # Circuit Breakers
    "LLM_BREAKER",
    "CircuitBreakerListener",
    "create_breaker",
    "with_circuit_breaker",
    # Retry
    "retry_with_backoff",
    "with_retry",
    "is_retryable_error",
    # Fallback
    "execute_with_fallbacks",
    "FallbackStrategy",
    # Metrics
    "record_circuit_breaker_state",
    "record_api_call",
    "record_api_failure",
    "record_retry",
    "record_fallback",
]
