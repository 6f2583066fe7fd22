"""Prometheus metrics

Resilience metrics (circuit breaker, provider calls, retries, fallbacks) and
engine counters (missions, redemptions, achievements, rate limiting).
Exposed by the API server on /metrics for scraping.
"""

import logging
from prometheus_client import Counter, Histogram, Enum

logger = logging.getLogger(__name__)

# Circuit breaker state
# Values: closed, open, half_open
circuit_breaker_state = Enum(
    'lifescore_circuit_breaker_state',
    'Current state of circuit breaker',
    ['api'],
    states=['closed', 'open', 'half_open']
)

# Labels: api, status (success/failure)
api_calls_total = Counter(
    'lifescore_api_calls_total',
    'Total number of text provider calls',
    ['api', 'status']
)

api_call_duration = Histogram(
    'lifescore_api_call_duration_seconds',
    'Duration of text provider calls in seconds',
    ['api'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, float('inf'))
)

# Labels: api, error_type (exception class name)
api_failures_total = Counter(
    'lifescore_api_failures_total',
    'Total number of text provider failures',
    ['api', 'error_type']
)

api_retries_total = Counter(
    'lifescore_api_retries_total',
    'Total number of retry attempts',
    ['api']
)

# Labels: primary_api, fallback_strategy, status (success/failure)
fallback_executions_total = Counter(
    'lifescore_fallback_executions_total',
    'Total number of fallback strategy executions',
    ['primary_api', 'fallback_strategy', 'status']
)

# Engine counters
missions_total = Counter(
    'lifescore_missions_total',
    'Mission lifecycle transitions',
    ['transition']  # started, completed, failed
)

rewards_redeemed_total = Counter(
    'lifescore_rewards_redeemed_total',
    'Successful reward redemptions',
    ['reward_type']
)

achievements_unlocked_total = Counter(
    'lifescore_achievements_unlocked_total',
    'Achievements unlocked',
    ['condition_type']
)

scenarios_total = Counter(
    'lifescore_scenarios_total',
    'Scenario simulations',
    ['mode']  # preview, apply
)

rate_limited_total = Counter(
    'lifescore_rate_limited_total',
    'Calls rejected by the rate limiter',
    ['operation']
)


def record_circuit_breaker_state(api: str, state: str) -> None:
    """Record circuit breaker state change (closed, open, half_open)"""
    try:
        circuit_breaker_state.labels(api=api).state(state)
        logger.debug(f"[METRICS] Circuit breaker {api} state: {state}")
    except ValueError as e:
        logger.error(f"Failed to record circuit breaker state: {e}")


def record_api_call(api: str, success: bool, duration: float) -> None:
    """Record a provider call and its duration"""
    status = 'success' if success else 'failure'
    api_calls_total.labels(api=api, status=status).inc()
    api_call_duration.labels(api=api).observe(duration)
    logger.debug(f"[METRICS] API call {api}: {status}, duration: {duration:.2f}s")


def record_api_failure(api: str, error_type: str) -> None:
    """Record a provider failure by exception class name"""
    api_failures_total.labels(api=api, error_type=error_type).inc()
    logger.debug(f"[METRICS] API failure {api}: {error_type}")


def record_retry(api: str) -> None:
    """Record a retry attempt"""
    api_retries_total.labels(api=api).inc()
    logger.debug(f"[METRICS] Retry attempt for {api}")


def record_fallback(primary_api: str, fallback_strategy: str, success: bool) -> None:
    """Record a fallback strategy execution"""
    status = 'success' if success else 'failure'
    fallback_executions_total.labels(
        primary_api=primary_api,
        fallback_strategy=fallback_strategy,
        status=status
    ).inc()
    logger.debug(f"[METRICS] Fallback {primary_api} → {fallback_strategy}: {status}")


def record_mission_transition(transition: str) -> None:
    missions_total.labels(transition=transition).inc()


def record_redemption(reward_type: str) -> None:
    rewards_redeemed_total.labels(reward_type=reward_type).inc()


def record_achievement_unlock(condition_type: str) -> None:
    achievements_unlocked_total.labels(condition_type=condition_type).inc()


def record_scenario(mode: str) -> None:
    scenarios_total.labels(mode=mode).inc()


def record_rate_limited(operation: str) -> None:
    rate_limited_total.labels(operation=operation).inc()
