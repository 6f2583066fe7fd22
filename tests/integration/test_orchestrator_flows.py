"""End-to-end flows through the orchestrator on the in-memory store"""
import asyncio
import pytest

from lifescore.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    RateLimitExceeded,
)
from lifescore.models import LifeScoreReason, MissionStatus

HEALTHY_COMMUTER = {
    "walk_minutes": 30,
    "diet_quality": "good",
    "commute_distance": 10,
    "driving_hours": 0,
    "seatbelt_usage": "always",
}


# ============================================================================
# Missions
# ============================================================================

@pytest.mark.asyncio
async def test_second_mission_conflicts_while_one_is_active(engine, store, ctx, user):
    first = await engine.start_mission(ctx, "daily-walk")

    with pytest.raises(ConflictError):
        await engine.start_mission(ctx, "budget-review")

    records = await store.list_user_missions(ctx.user_id)
    assert [r.mission_id for r in records] == ["daily-walk"]
    assert records[0].status == MissionStatus.ACTIVE
    assert records[0].id == first.id


@pytest.mark.asyncio
async def test_completion_clamps_lifescore_and_uses_difficulty_coins(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, lifescore=92)

    await bare_engine.start_mission(ctx, "scenario-three")
    result = await bare_engine.complete_mission(ctx, "scenario-three")

    assert result.stats.lifescore == 100
    assert result.lifescore_delta == 8
    assert result.xp_earned == 50
    assert result.stats.xp == 50
    assert result.coins_earned == 20
    assert result.stats.coins == 20
    assert result.user_mission.status == MissionStatus.COMPLETED
    assert result.user_mission.progress == 100

    history = await bare_engine.get_lifescore_history(ctx)
    assert history[0].old_score + history[0].change_amount == history[0].new_score
    assert history[0].reason == LifeScoreReason.MISSION_COMPLETE


@pytest.mark.asyncio
async def test_completing_twice_grants_one_reward(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store)
    await bare_engine.start_mission(ctx, "scenario-three")
    await bare_engine.complete_mission(ctx, "scenario-three")
    after_first = await bare_engine.get_stats(ctx)

    with pytest.raises(ConflictError):
        await bare_engine.complete_mission(ctx, "scenario-three")

    assert await bare_engine.get_stats(ctx) == after_first


@pytest.mark.asyncio
async def test_concurrent_completion_single_winner(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store)
    await bare_engine.start_mission(ctx, "scenario-three")

    results = await asyncio.gather(
        bare_engine.complete_mission(ctx, "scenario-three"),
        bare_engine.complete_mission(ctx, "scenario-three"),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)

    stats = await bare_engine.get_stats(ctx)
    assert stats.xp == 50
    assert stats.coins == 20


@pytest.mark.asyncio
async def test_failed_completion_leaves_stats_untouched(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, lifescore=40, xp=30, coins=15)
    before = await bare_engine.get_stats(ctx)

    with pytest.raises(ConflictError):
        await bare_engine.complete_mission(ctx, "daily-walk")

    assert await bare_engine.get_stats(ctx) == before


@pytest.mark.asyncio
async def test_first_completion_unlocks_achievement(engine, ctx, user):
    await engine.start_mission(ctx, "daily-walk")
    result = await engine.complete_mission(ctx, "daily-walk")

    assert [a.id for a in result.achievements_unlocked] == ["first-steps"]
    # mission 20 xp + achievement 50 xp, mission 10 coins + achievement 25 coins
    assert result.stats.xp == 70
    assert result.stats.coins == 35
    assert result.stats.lifescore == 8
    assert result.current_streak == 1


@pytest.mark.asyncio
async def test_unknown_user(engine, ctx):
    with pytest.raises(NotFoundError):
        await engine.start_mission(ctx, "daily-walk")


# ============================================================================
# Rewards
# ============================================================================

@pytest.mark.asyncio
async def test_redeem_exact_balance(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, coins=100)

    result = await bare_engine.redeem_reward(ctx, "voucher-100")

    assert result.balance == 0
    assert result.coins_spent == 100
    assert result.redemption.redemption_token.startswith("LS-")
    assert len(result.redemption.redemption_token) == 15


@pytest.mark.asyncio
async def test_redeem_one_coin_short(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, coins=99)

    with pytest.raises(InsufficientBalanceError):
        await bare_engine.redeem_reward(ctx, "voucher-100")

    assert (await bare_engine.get_stats(ctx)).coins == 99
    assert await bare_engine.list_user_rewards(ctx) == []


@pytest.mark.asyncio
async def test_badge_is_award_once(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, coins=200)

    await bare_engine.redeem_reward(ctx, "bronze-badge")
    with pytest.raises(ConflictError):
        await bare_engine.redeem_reward(ctx, "bronze-badge")

    await bare_engine.redeem_reward(ctx, "coin-boost")
    await bare_engine.redeem_reward(ctx, "coin-boost")
    assert len(await bare_engine.list_user_rewards(ctx)) == 3
    assert (await bare_engine.get_stats(ctx)).coins == 140


@pytest.mark.asyncio
async def test_inactive_reward_not_found(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, coins=50)

    with pytest.raises(NotFoundError):
        await bare_engine.redeem_reward(ctx, "retired-reward")


# ============================================================================
# Achievements
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_evaluation_awards_once(engine, store, ctx, seed_stats):
    seed_stats(store, current_streak=3, longest_streak=3)

    results = await asyncio.gather(
        engine.evaluate_achievements(ctx),
        engine.evaluate_achievements(ctx),
    )

    assert sorted(len(r) for r in results) == [0, 1]
    held = await store.read_user_achievements(ctx.user_id)
    assert [a.achievement_id for a in held] == ["streak-3"]
    assert (await engine.get_stats(ctx)).coins == 10


@pytest.mark.asyncio
async def test_achievement_progress_listing(engine, ctx, user):
    progress = {p.achievement.id: p for p in await engine.list_achievements(ctx)}

    assert set(progress) == {"first-steps", "streak-3", "scenario-fan"}
    assert not any(p.unlocked for p in progress.values())


# ============================================================================
# Scenarios
# ============================================================================

@pytest.mark.asyncio
async def test_preview_is_deterministic_and_read_only(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, lifescore=50)

    first = await bare_engine.simulate_scenario(ctx, HEALTHY_COMMUTER)
    second = await bare_engine.simulate_scenario(ctx, HEALTHY_COMMUTER)

    assert first.prediction.model_dump_json() == second.prediction.model_dump_json()
    assert first.applied is False
    assert first.lifescore_change is None
    assert second.stats.lifescore == 50
    assert second.stats.xp == 0


@pytest.mark.asyncio
async def test_apply_mode_updates_stats(bare_engine, bare_store, ctx, seed_stats):
    seed_stats(bare_store, lifescore=50)

    result = await bare_engine.simulate_scenario(ctx, HEALTHY_COMMUTER, apply=True)

    assert result.applied is True
    assert result.prediction.lifescore_delta == 11
    assert result.stats.lifescore == 61
    assert result.stats.xp == 53
    history = await bare_engine.get_lifescore_history(ctx)
    assert history[0].reason == LifeScoreReason.STREAK_BONUS


@pytest.mark.asyncio
async def test_previews_past_achievement_threshold_leave_stats_unchanged(engine, ctx, user):
    before = await engine.get_stats(ctx)

    results = [await engine.simulate_scenario(ctx, HEALTHY_COMMUTER) for _ in range(3)]

    after = await engine.get_stats(ctx)
    assert all(r.achievements_unlocked == [] for r in results)
    assert (after.xp, after.coins, after.lifescore) == (before.xp, before.coins, before.lifescore)
    assert all(r.stats == results[0].stats for r in results)


@pytest.mark.asyncio
async def test_scenarios_count_toward_achievements(engine, ctx, user):
    first = await engine.simulate_scenario(ctx, HEALTHY_COMMUTER)
    await engine.simulate_scenario(ctx, HEALTHY_COMMUTER)

    unlocked = await engine.evaluate_achievements(ctx)

    assert first.achievements_unlocked == []
    assert [a.id for a in unlocked] == ["scenario-fan"]
    stats = await engine.get_stats(ctx)
    assert stats.xp == 10


@pytest.mark.asyncio
async def test_scenario_rate_limit(engine, ctx, user):
    for _ in range(3):
        await engine.simulate_scenario(ctx, HEALTHY_COMMUTER)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await engine.simulate_scenario(ctx, HEALTHY_COMMUTER)
    assert exc_info.value.context["retry_after"] > 0

    # Separate operation, separate window
    assert await engine.recommend_missions(ctx, HEALTHY_COMMUTER)


# ============================================================================
# Invariants
# ============================================================================

@pytest.mark.asyncio
async def test_stats_stay_in_bounds_through_mixed_operations(engine, store, ctx, clock, seed_stats):
    seed_stats(store, lifescore=5)

    await engine.start_mission(ctx, "risky-habit")
    await engine.complete_mission(ctx, "risky-habit")
    clock.advance(days=1)
    await engine.start_mission(ctx, "daily-walk")
    await engine.complete_mission(ctx, "daily-walk")
    await engine.redeem_reward(ctx, "coin-boost")

    stats = await engine.get_stats(ctx)
    assert 0 <= stats.lifescore <= 100
    assert stats.coins >= 0
    assert stats.streak == 2

    active = await store.list_user_missions(ctx.user_id, status=MissionStatus.ACTIVE)
    assert len(active) <= 1
    for entry in await engine.get_lifescore_history(ctx):
        assert entry.old_score + entry.change_amount == entry.new_score
        assert abs(entry.change_amount) <= 50
