"""Unit tests for the mission lifecycle and streak tracking"""
import pytest
from datetime import date, datetime, timezone

from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.missions import COIN_REWARDS, MissionLifecycleManager, coin_reward_for, instance_key
from lifescore.engine.rewards import RewardLedger
from lifescore.exceptions import ConflictError, NotFoundError, ValidationError
from lifescore.models import BehaviorEventType, Difficulty, Mission, MissionStatus, Recurrence


@pytest.fixture
def manager(store, clock):
    return MissionLifecycleManager(
        store,
        LifeScoreLedger(store, clock=clock),
        RewardLedger(store, clock=clock),
        clock=clock,
    )


async def _start(manager, store, user_id, mission_id):
    async with store.transaction(user_id) as tx:
        return await manager.start(tx, user_id, mission_id)


async def _complete(manager, store, user_id, mission_id):
    async with store.transaction(user_id) as tx:
        return await manager.complete(tx, user_id, mission_id)


# ============================================================================
# Pure helpers
# ============================================================================

def test_coin_reward_prefers_explicit_value():
    mission = Mission(id="m", title="M", difficulty=Difficulty.EASY, xp_reward=10, coin_reward=50)
    assert coin_reward_for(mission) == 50


@pytest.mark.parametrize("difficulty,coins", [
    (Difficulty.EASY, 10), (Difficulty.MEDIUM, 20), (Difficulty.HARD, 30), (Difficulty.EXPERT, 30),
])
def test_coin_reward_by_difficulty(difficulty, coins):
    mission = Mission(id="m", title="M", difficulty=difficulty, xp_reward=10)
    assert coin_reward_for(mission) == coins == COIN_REWARDS[difficulty]


def test_instance_keys():
    at = datetime(2026, 3, 4, 23, 59, tzinfo=timezone.utc)
    assert instance_key(Mission(id="a", title="A", xp_reward=1), at) == "once"
    assert instance_key(Mission(id="b", title="B", xp_reward=1, recurrence=Recurrence.DAILY), at) == "2026-03-04"
    assert instance_key(Mission(id="c", title="C", xp_reward=1, recurrence=Recurrence.WEEKLY), at) == "2026-W10"


# ============================================================================
# Start
# ============================================================================

@pytest.mark.asyncio
async def test_start_creates_active_record(manager, store, seed_stats, test_user_id):
    seed_stats(store)

    record = await _start(manager, store, test_user_id, "daily-walk")

    assert record.status == MissionStatus.ACTIVE
    assert record.instance_key == "2026-03-02"
    assert record.progress == 0
    events = await store.list_behavior_events(test_user_id)
    assert [e.event_type for e in events] == [BehaviorEventType.MISSION_START]


@pytest.mark.asyncio
async def test_start_is_idempotent_for_the_active_mission(manager, store, seed_stats, test_user_id):
    seed_stats(store)

    first = await _start(manager, store, test_user_id, "daily-walk")
    second = await _start(manager, store, test_user_id, "daily-walk")

    assert second.id == first.id
    assert len(await store.list_user_missions(test_user_id)) == 1


@pytest.mark.asyncio
async def test_start_while_another_mission_is_active(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "daily-walk")

    with pytest.raises(ConflictError) as exc_info:
        await _start(manager, store, test_user_id, "budget-review")

    assert exc_info.value.current_state == "active"
    assert exc_info.value.context["active_mission_id"] == "daily-walk"
    missions = await store.list_user_missions(test_user_id)
    assert [m.mission_id for m in missions] == ["daily-walk"]


@pytest.mark.asyncio
async def test_start_locked_mission(manager, store, seed_stats, test_user_id):
    seed_stats(store, xp=150)  # level 2, needs 3

    with pytest.raises(ConflictError) as exc_info:
        await _start(manager, store, test_user_id, "expert-only")

    assert exc_info.value.current_state == "locked"


@pytest.mark.asyncio
async def test_start_unlocked_once_level_is_reached(manager, store, seed_stats, test_user_id):
    seed_stats(store, xp=200, level=3)

    record = await _start(manager, store, test_user_id, "expert-only")
    assert record.status == MissionStatus.ACTIVE


@pytest.mark.asyncio
@pytest.mark.parametrize("mission_id", ["does-not-exist", "retired"])
async def test_start_unknown_or_inactive_mission(manager, store, seed_stats, test_user_id, mission_id):
    seed_stats(store)
    with pytest.raises(NotFoundError):
        await _start(manager, store, test_user_id, mission_id)


@pytest.mark.asyncio
async def test_start_unknown_user(manager, store):
    with pytest.raises(NotFoundError):
        await _start(manager, store, "ghost", "daily-walk")


# ============================================================================
# Complete
# ============================================================================

@pytest.mark.asyncio
async def test_complete_clamps_lifescore_and_grants_rewards(manager, store, seed_stats, test_user_id):
    seed_stats(store, lifescore=92)
    await _start(manager, store, test_user_id, "scenario-three")

    completion = await _complete(manager, store, test_user_id, "scenario-three")

    stats = await store.read_stats(test_user_id)
    assert stats.lifescore == 100
    assert stats.xp == 50
    assert stats.coins == 20
    assert completion.lifescore.applied_delta == 8
    assert completion.user_mission.status == MissionStatus.COMPLETED
    assert completion.user_mission.progress == 100
    assert completion.user_mission.lifescore_change == 8
    assert completion.user_mission.coins_earned == 20
    assert completion.streak.current_streak == 1


@pytest.mark.asyncio
async def test_complete_uses_explicit_coin_reward(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "budget-review")

    completion = await _complete(manager, store, test_user_id, "budget-review")

    assert completion.coins_earned == 50
    assert (await store.read_stats(test_user_id)).coins_earned_total == 50


@pytest.mark.asyncio
async def test_negative_impact_mission_floors_at_zero(manager, store, seed_stats, test_user_id):
    seed_stats(store, lifescore=5)
    await _start(manager, store, test_user_id, "risky-habit")

    completion = await _complete(manager, store, test_user_id, "risky-habit")

    assert completion.lifescore.new_score == 0
    assert completion.lifescore.applied_delta == -5
    assert completion.xp.xp_awarded == 10


@pytest.mark.asyncio
async def test_complete_twice_grants_once(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "scenario-three")
    await _complete(manager, store, test_user_id, "scenario-three")
    after_first = await store.read_stats(test_user_id)

    with pytest.raises(ConflictError) as exc_info:
        await _complete(manager, store, test_user_id, "scenario-three")

    assert exc_info.value.current_state == "completed"
    assert await store.read_stats(test_user_id) == after_first


@pytest.mark.asyncio
async def test_complete_without_start(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    with pytest.raises(ConflictError) as exc_info:
        await _complete(manager, store, test_user_id, "scenario-three")
    assert exc_info.value.current_state == "available"


@pytest.mark.asyncio
async def test_one_time_mission_cannot_restart(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "scenario-three")
    await _complete(manager, store, test_user_id, "scenario-three")

    with pytest.raises(ConflictError) as exc_info:
        await _start(manager, store, test_user_id, "scenario-three")
    assert exc_info.value.current_state == "completed"


@pytest.mark.asyncio
async def test_daily_mission_repeats_next_day(manager, store, seed_stats, test_user_id, clock):
    seed_stats(store)
    await _start(manager, store, test_user_id, "daily-walk")
    await _complete(manager, store, test_user_id, "daily-walk")

    clock.advance(days=1)
    record = await _start(manager, store, test_user_id, "daily-walk")
    completion = await _complete(manager, store, test_user_id, "daily-walk")

    assert record.instance_key == "2026-03-03"
    assert completion.streak.current_streak == 2
    stats = await store.read_stats(test_user_id)
    assert stats.xp == 40
    assert stats.coins == 20


@pytest.mark.asyncio
async def test_active_mission_from_earlier_week_is_returned(manager, store, seed_stats, test_user_id, clock):
    seed_stats(store)
    first = await _start(manager, store, test_user_id, "weekly-sleep")

    clock.advance(days=7)
    again = await _start(manager, store, test_user_id, "weekly-sleep")

    assert again.id == first.id
    assert again.instance_key == "2026-W10"


# ============================================================================
# Fail / Progress
# ============================================================================

@pytest.mark.asyncio
async def test_fail_releases_the_active_slot(manager, store, seed_stats, test_user_id):
    seed_stats(store, lifescore=30)
    await _start(manager, store, test_user_id, "scenario-three")

    async with store.transaction(test_user_id) as tx:
        failed = await manager.fail(tx, test_user_id, "scenario-three")

    assert failed.status == MissionStatus.FAILED
    assert failed.completed_at is not None
    stats = await store.read_stats(test_user_id)
    assert (stats.lifescore, stats.xp, stats.coins) == (30, 0, 0)

    # Another mission can start now
    record = await _start(manager, store, test_user_id, "budget-review")
    assert record.status == MissionStatus.ACTIVE


@pytest.mark.asyncio
async def test_fail_requires_active_mission(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    with pytest.raises(ConflictError):
        async with store.transaction(test_user_id) as tx:
            await manager.fail(tx, test_user_id, "scenario-three")


@pytest.mark.asyncio
async def test_update_progress(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "scenario-three")

    async with store.transaction(test_user_id) as tx:
        record = await manager.update_progress(tx, test_user_id, "scenario-three", 40)
    assert record.progress == 40

    async with store.transaction(test_user_id) as tx:
        same = await manager.update_progress(tx, test_user_id, "scenario-three", 40)
    assert same.progress == 40

    with pytest.raises(ValidationError):
        async with store.transaction(test_user_id) as tx:
            await manager.update_progress(tx, test_user_id, "scenario-three", 30)

    stored = await store.list_user_missions(test_user_id)
    assert stored[0].progress == 40


@pytest.mark.asyncio
@pytest.mark.parametrize("progress", [-1, 100, 150, 50.5])
async def test_update_progress_out_of_range(manager, store, seed_stats, test_user_id, progress):
    seed_stats(store)
    await _start(manager, store, test_user_id, "scenario-three")
    with pytest.raises(ValidationError):
        async with store.transaction(test_user_id) as tx:
            await manager.update_progress(tx, test_user_id, "scenario-three", progress)


# ============================================================================
# Streak
# ============================================================================

@pytest.mark.asyncio
async def test_streak_same_day_unchanged(manager, store, seed_stats, test_user_id):
    seed_stats(store, current_streak=4, longest_streak=4, last_active_date=date(2026, 3, 2))

    async with store.transaction(test_user_id) as tx:
        update = await manager.register_activity(tx, test_user_id)

    assert update.current_streak == 4
    assert (await store.read_stats(test_user_id)).version == 0


@pytest.mark.asyncio
async def test_streak_gap_resets_but_keeps_longest(manager, store, seed_stats, test_user_id):
    seed_stats(store, current_streak=9, longest_streak=12, last_active_date=date(2026, 2, 25))

    async with store.transaction(test_user_id) as tx:
        update = await manager.register_activity(tx, test_user_id)

    assert update.current_streak == 1
    assert update.longest_streak == 12
    assert update.old_streak == 9


@pytest.mark.asyncio
async def test_streak_milestone_logs_event(manager, store, seed_stats, test_user_id):
    seed_stats(store, current_streak=6, longest_streak=6, last_active_date=date(2026, 3, 1))

    async with store.transaction(test_user_id) as tx:
        update = await manager.register_activity(tx, test_user_id)

    assert update.current_streak == 7
    assert update.milestone_reached == 7
    stats = await store.read_stats(test_user_id)
    assert stats.longest_streak == 7
    events = await store.list_behavior_events(test_user_id)
    assert events[0].event_type == BehaviorEventType.STREAK_MILESTONE
    assert events[0].event_data == {"streak": 7}


# ============================================================================
# Availability
# ============================================================================

@pytest.mark.asyncio
async def test_availability_marks_locked_and_active(manager, store, seed_stats, test_user_id):
    seed_stats(store)
    await _start(manager, store, test_user_id, "daily-walk")

    statuses = {a.mission.id: a.status for a in await manager.availability(test_user_id)}

    assert statuses["daily-walk"] == MissionStatus.ACTIVE
    assert statuses["expert-only"] == MissionStatus.LOCKED
    assert statuses["budget-review"] == MissionStatus.AVAILABLE
    assert "retired" not in statuses
