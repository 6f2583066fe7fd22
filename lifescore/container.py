"""
Engine wiring

build_engine() assembles the store, ledgers, mission manager, evaluator,
narrator and rate limiter into one orchestrator. Nothing here is cached at
module level; each call returns an independent engine.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from lifescore import config
from lifescore.db.catalog import DEFAULT_ACHIEVEMENTS, DEFAULT_MISSIONS, DEFAULT_REWARDS
from lifescore.db.connection import Database
from lifescore.db.memory_store import InMemoryStore
from lifescore.db.postgres_store import PostgresStore
from lifescore.db.store import GamificationStore
from lifescore.engine.achievements import AchievementEvaluator
from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.missions import MissionLifecycleManager
from lifescore.engine.orchestrator import GamificationOrchestrator
from lifescore.engine.rewards import RewardLedger
from lifescore.engine.scenario import ScenarioNarrator
from lifescore.exceptions import ConfigurationError
from lifescore.providers import ExternalLLMProvider, LocalDeterministicProvider, TextCompletionProvider
from lifescore.utils.datetime_helpers import Clock, now_utc
from lifescore.utils.ratelimit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class EngineContainer:
    """A wired engine plus the resources it owns"""
    orchestrator: GamificationOrchestrator
    store: GamificationStore
    provider: TextCompletionProvider
    database: Optional[Database] = None

    async def close(self) -> None:
        await self.provider.close()
        await self.store.close()


def build_provider(name: Optional[str] = None) -> TextCompletionProvider:
    """Text completion provider selected by TEXT_PROVIDER"""
    name = name or config.TEXT_PROVIDER
    if name == "local":
        return LocalDeterministicProvider()
    if name == "openai":
        if not config.OPENAI_API_KEY:
            raise ConfigurationError(
                message="OPENAI_API_KEY is required for the openai provider",
                config_key="OPENAI_API_KEY",
            )
        return ExternalLLMProvider(api_key=config.OPENAI_API_KEY, model=config.AI_MODEL)
    raise ConfigurationError(message=f"Unknown text provider: {name}", config_key="TEXT_PROVIDER")


async def build_store(backend: Optional[str] = None) -> tuple[GamificationStore, Optional[Database]]:
    """Datastore selected by STORE_BACKEND; postgres gets its schema and catalog applied"""
    backend = backend or config.STORE_BACKEND
    if backend == "memory":
        store = InMemoryStore(
            missions=DEFAULT_MISSIONS,
            achievements=DEFAULT_ACHIEVEMENTS,
            rewards=DEFAULT_REWARDS,
        )
        return store, None
    if backend == "postgres":
        database = Database(config.DATABASE_URL)
        await database.init_pool()
        store = PostgresStore(database)
        await store.apply_schema()
        await store.seed_catalog(DEFAULT_MISSIONS, DEFAULT_ACHIEVEMENTS, DEFAULT_REWARDS)
        return store, database
    raise ConfigurationError(message=f"Unknown store backend: {backend}", config_key="STORE_BACKEND")


def wire_orchestrator(
    store: GamificationStore,
    provider: Optional[TextCompletionProvider] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    clock: Clock = now_utc,
) -> GamificationOrchestrator:
    """Compose the engine components around an existing store"""
    lifescore_ledger = LifeScoreLedger(store, clock=clock)
    reward_ledger = RewardLedger(store, clock=clock)
    missions = MissionLifecycleManager(store, lifescore_ledger, reward_ledger, clock=clock)
    evaluator = AchievementEvaluator(store, lifescore_ledger, reward_ledger, clock=clock)
    narrator = None
    if provider is not None:
        narrator = ScenarioNarrator(
            provider,
            timeout_seconds=config.AI_TIMEOUT_SECONDS,
            max_tokens=config.AI_MAX_TOKENS,
            temperature=config.AI_TEMPERATURE,
        )
    return GamificationOrchestrator(
        store,
        lifescore_ledger,
        reward_ledger,
        missions,
        evaluator,
        narrator=narrator,
        rate_limiter=rate_limiter,
        clock=clock,
    )


async def build_engine(
    store: Optional[GamificationStore] = None,
    provider: Optional[TextCompletionProvider] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    clock: Clock = now_utc,
) -> EngineContainer:
    """
    Build a complete engine from configuration

    Args:
        store: Datastore to use; built from STORE_BACKEND when omitted
        provider: Text completion provider; built from TEXT_PROVIDER when omitted
        rate_limiter: Limiter for scenario calls; built from SCENARIO_RATE_* when omitted
        clock: Source of "now" for every component

    Returns:
        EngineContainer owning the store, provider and (for postgres) the pool
    """
    database = None
    if store is None:
        store, database = await build_store()
    if provider is None:
        provider = build_provider()
    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(
            max_calls=config.SCENARIO_RATE_LIMIT,
            window_seconds=config.SCENARIO_RATE_WINDOW_SECONDS,
        )

    orchestrator = wire_orchestrator(store, provider=provider, rate_limiter=rate_limiter, clock=clock)
    logger.info(f"Engine built with store={type(store).__name__}, provider={provider.name}")
    return EngineContainer(orchestrator=orchestrator, store=store, provider=provider, database=database)
