"""Global test fixtures and utilities for lifescore tests"""
import pytest
from datetime import datetime, timedelta, timezone

from lifescore.container import wire_orchestrator
from lifescore.db.memory_store import InMemoryStore
from lifescore.models import (
    Achievement,
    AchievementRarity,
    ConditionType,
    Difficulty,
    Mission,
    MissionCategory,
    Recurrence,
    RequestContext,
    Reward,
    RewardType,
    UserStats,
)
from lifescore.utils.ratelimit import SlidingWindowRateLimiter


class FrozenClock:
    """Deterministic clock; advance() moves it forward"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ============================================================================
# Clock & Context Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Monday 2026-03-02 09:00 UTC"""
    return FrozenClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def ctx(test_user_id):
    """Request context for the standard test user"""
    return RequestContext(user_id=test_user_id, session_id="session-abc")


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def missions():
    return [
        Mission(
            id="daily-walk", title="Walk 30 Minutes", category=MissionCategory.HEALTH,
            difficulty=Difficulty.EASY, xp_reward=20, lifescore_impact=3, recurrence=Recurrence.DAILY,
        ),
        Mission(
            id="scenario-three", title="Balanced Week", category=MissionCategory.HEALTH,
            difficulty=Difficulty.MEDIUM, xp_reward=50, lifescore_impact=10,
        ),
        Mission(
            id="budget-review", title="Budget Review", category=MissionCategory.FINANCIAL_GUARDIAN,
            difficulty=Difficulty.MEDIUM, xp_reward=80, lifescore_impact=16, coin_reward=50,
        ),
        Mission(
            id="weekly-sleep", title="Sleep Well", category=MissionCategory.HEALTH,
            difficulty=Difficulty.HARD, xp_reward=40, lifescore_impact=5, recurrence=Recurrence.WEEKLY,
        ),
        Mission(
            id="risky-habit", title="Night Driving Log", category=MissionCategory.SAFE_DRIVING,
            difficulty=Difficulty.EASY, xp_reward=10, lifescore_impact=-10,
        ),
        Mission(
            id="expert-only", title="Emergency Fund", category=MissionCategory.FINANCIAL_GUARDIAN,
            difficulty=Difficulty.EXPERT, xp_reward=100, lifescore_impact=20, required_level=3,
        ),
        Mission(
            id="retired", title="Retired Mission", difficulty=Difficulty.EASY,
            xp_reward=10, lifescore_impact=1, is_active=False,
        ),
    ]


@pytest.fixture
def achievements():
    return [
        Achievement(
            id="first-steps", name="First Steps", condition_type=ConditionType.MISSIONS_COMPLETED,
            condition_value=1, xp_reward=50, coin_reward=25, lifescore_boost=5,
        ),
        Achievement(
            id="streak-3", name="Three in a Row", condition_type=ConditionType.STREAK_COUNT,
            condition_value=3, xp_reward=0, coin_reward=10, rarity=AchievementRarity.RARE,
        ),
        Achievement(
            id="scenario-fan", name="Scenario Fan", condition_type=ConditionType.SCENARIOS_COMPLETED,
            condition_value=2, xp_reward=10,
        ),
    ]


@pytest.fixture
def rewards():
    return [
        Reward(id="bronze-badge", title="Bronze Badge", reward_type=RewardType.BADGE, coins_cost=0),
        Reward(id="voucher-100", title="Voucher", reward_type=RewardType.PARTNER_OFFER, coins_cost=100),
        Reward(id="coin-boost", title="Weekend Boost", reward_type=RewardType.COIN_BOOST, coins_cost=30),
        Reward(id="retired-reward", title="Old Offer", coins_cost=10, is_active=False),
    ]


# ============================================================================
# Store & Engine Fixtures
# ============================================================================

@pytest.fixture
def store(missions, achievements, rewards):
    """In-memory store loaded with the test catalog"""
    return InMemoryStore(missions=missions, achievements=achievements, rewards=rewards)


@pytest.fixture
def bare_store(missions, rewards):
    """Store with no achievements, so completions show only the mission's own rewards"""
    return InMemoryStore(missions=missions, rewards=rewards)


@pytest.fixture
def rate_limiter():
    return SlidingWindowRateLimiter(max_calls=3, window_seconds=60)


@pytest.fixture
def engine(store, clock, rate_limiter):
    """Orchestrator over the in-memory store, no text provider"""
    return wire_orchestrator(store, rate_limiter=rate_limiter, clock=clock)


@pytest.fixture
def bare_engine(bare_store, clock):
    return wire_orchestrator(bare_store, clock=clock)


@pytest.fixture
async def user(engine, ctx):
    """Registered user with default stats"""
    return await engine.create_user(ctx)


@pytest.fixture
def seed_stats(test_user_id):
    """Install starting stats for the test user on a store"""
    def _seed(target_store: InMemoryStore, **fields) -> UserStats:
        stats = UserStats(user_id=test_user_id, **fields)
        target_store.seed_user(stats)
        return stats
    return _seed
