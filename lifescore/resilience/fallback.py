"""Fallback strategies

Tries strategies in priority order until one succeeds. Narrative enrichment
uses it to fall back from the external provider to the local one.
"""

import logging
from typing import Any, Callable, List, TypeVar
from dataclasses import dataclass

from lifescore.resilience.metrics import record_fallback

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class FallbackStrategy:
    """
    A fallback strategy with priority ordering.

    Attributes:
        name: Human-readable name for logging
        handler: Async callable that implements the strategy
        priority: Priority level (lower = higher priority, 1 = primary)
    """
    name: str
    handler: Callable[..., T]
    priority: int


async def execute_with_fallbacks(
    strategies: List[FallbackStrategy],
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Execute strategies in priority order until one succeeds.

    Returns the first successful result. If every strategy fails, the last
    exception is raised.

    Example:
        strategies = [
            FallbackStrategy("openai", external.complete, priority=1),
            FallbackStrategy("local", local.complete, priority=2),
        ]
        text = await execute_with_fallbacks(strategies, prompt, 300, 0.4)
    """
    if not strategies:
        raise ValueError("At least one fallback strategy is required")

    sorted_strategies = sorted(strategies, key=lambda s: s.priority)
    primary = sorted_strategies[0].name
    last_exception = None

    for strategy in sorted_strategies:
        try:
            logger.debug(f"[FALLBACK] Trying strategy: {strategy.name}")
            result = await strategy.handler(*args, **kwargs)
            logger.debug(f"[FALLBACK] Strategy '{strategy.name}' succeeded")
            if strategy.priority > 1:
                record_fallback(primary, strategy.name, success=True)
            return result

        except Exception as e:
            logger.warning(
                f"[FALLBACK] Strategy '{strategy.name}' failed: "
                f"{type(e).__name__}: {e}"
            )
            last_exception = e
            if strategy.priority > 1:
                record_fallback(primary, strategy.name, success=False)

    logger.error(f"[FALLBACK] All {len(sorted_strategies)} fallback strategies exhausted")
    raise last_exception
