"""
Achievement Evaluator

Checks the active achievement catalog, in catalog order, against counters
aggregated once per evaluation:
- LifeScore, current streak, total XP, lifetime coins earned (user stats)
- Missions completed, distinct active days, scenarios run, rewards redeemed

Each achievement is awarded at most once per user; the datastore's
uniqueness constraint backs this up under concurrent evaluation. Rewards
granted by an unlock (XP, coins, LifeScore boost) do not trigger another
evaluation pass.
"""

import logging
from typing import Callable, Dict, Optional

from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.progression import award_xp
from lifescore.engine.rewards import RewardLedger
from lifescore.engine.stats import record_event
from lifescore.exceptions import DuplicateRecordError
from lifescore.models import (
    Achievement,
    AchievementCounters,
    AchievementProgress,
    BehaviorEventType,
    ConditionType,
    LifeScoreReason,
    MissionStatus,
    UserAchievement,
)
from lifescore.resilience.metrics import record_achievement_unlock
from lifescore.utils.datetime_helpers import Clock, now_utc

logger = logging.getLogger(__name__)

Predicate = Callable[[AchievementCounters, int], bool]

# Counter each condition type is measured against
COUNTER_FOR_CONDITION: Dict[ConditionType, Callable[[AchievementCounters], int]] = {
    ConditionType.LIFESCORE_MILESTONE: lambda c: c.lifescore,
    ConditionType.STREAK_COUNT: lambda c: c.current_streak,
    ConditionType.MISSIONS_COMPLETED: lambda c: c.missions_completed,
    ConditionType.XP_MILESTONE: lambda c: c.xp,
    ConditionType.COINS_EARNED: lambda c: c.coins_earned,
    ConditionType.DAYS_ACTIVE: lambda c: c.days_active,
    ConditionType.SCENARIOS_COMPLETED: lambda c: c.scenarios_completed,
    ConditionType.REWARDS_REDEEMED: lambda c: c.rewards_redeemed,
}

PREDICATES: Dict[ConditionType, Predicate] = {
    ConditionType.LIFESCORE_MILESTONE: lambda c, threshold: c.lifescore >= threshold,
    ConditionType.STREAK_COUNT: lambda c, threshold: c.current_streak >= threshold,
    ConditionType.MISSIONS_COMPLETED: lambda c, threshold: c.missions_completed >= threshold,
    ConditionType.XP_MILESTONE: lambda c, threshold: c.xp >= threshold,
    ConditionType.COINS_EARNED: lambda c, threshold: c.coins_earned >= threshold,
    ConditionType.DAYS_ACTIVE: lambda c, threshold: c.days_active >= threshold,
    ConditionType.SCENARIOS_COMPLETED: lambda c, threshold: c.scenarios_completed >= threshold,
    ConditionType.REWARDS_REDEEMED: lambda c, threshold: c.rewards_redeemed >= threshold,
}


async def aggregate_counters(tx: StoreTransaction) -> AchievementCounters:
    """Fresh counters for the transaction's user"""
    stats = await tx.get_stats()
    return AchievementCounters(
        lifescore=stats.lifescore,
        current_streak=stats.current_streak,
        missions_completed=await tx.count_user_missions(MissionStatus.COMPLETED),
        xp=stats.xp,
        coins_earned=stats.coins_earned_total,
        days_active=await tx.count_active_days(),
        scenarios_completed=await tx.count_behavior_events(BehaviorEventType.SCENARIO_SIMULATE),
        rewards_redeemed=await tx.count_user_rewards(),
    )


class AchievementEvaluator:
    """Single-pass rules engine over (condition_type → predicate)"""

    def __init__(
        self,
        store: GamificationStore,
        lifescore_ledger: LifeScoreLedger,
        reward_ledger: RewardLedger,
        clock: Clock = now_utc,
    ):
        self.store = store
        self.lifescore_ledger = lifescore_ledger
        self.reward_ledger = reward_ledger
        self.clock = clock

    async def evaluate(
        self,
        tx: StoreTransaction,
        user_id: str,
        session_id: Optional[str] = None,
    ) -> list[Achievement]:
        """
        Award every met-and-not-held achievement

        Returns:
            Newly unlocked achievements in catalog order
        """
        catalog = await self.store.list_achievements(active_only=True)
        held = {ua.achievement_id for ua in await tx.list_user_achievements()}
        counters = await aggregate_counters(tx)
        newly_unlocked = []

        for achievement in catalog:
            if achievement.id in held:
                continue
            if not PREDICATES[achievement.condition_type](counters, achievement.condition_value):
                continue

            now = self.clock()
            try:
                await tx.insert_user_achievement(
                    UserAchievement(
                        user_id=user_id,
                        achievement_id=achievement.id,
                        earned_at=now,
                        metadata={
                            "condition_type": achievement.condition_type.value,
                            "condition_value": achievement.condition_value,
                            "counter": COUNTER_FOR_CONDITION[achievement.condition_type](counters),
                        },
                    )
                )
            except DuplicateRecordError:
                logger.info(f"Achievement {achievement.id} already awarded to user {user_id}, skipping")
                continue

            await self._grant(tx, user_id, achievement, session_id)
            held.add(achievement.id)
            newly_unlocked.append(achievement)

            stats = await tx.get_stats()
            await record_event(
                tx,
                BehaviorEventType.ACHIEVEMENT_EARN,
                now,
                event_data={
                    "achievement_id": achievement.id,
                    "xp_reward": achievement.xp_reward,
                    "coin_reward": achievement.coin_reward,
                    "lifescore_boost": achievement.lifescore_boost,
                },
                lifescore_before=stats.lifescore,
                lifescore_after=stats.lifescore,
                session_id=session_id,
            )
            record_achievement_unlock(achievement.condition_type.value)
            logger.info(
                f"User {user_id} unlocked achievement: {achievement.id} ({achievement.name}) "
                f"+{achievement.xp_reward} XP, +{achievement.coin_reward} coins"
            )

        return newly_unlocked

    async def _grant(
        self,
        tx: StoreTransaction,
        user_id: str,
        achievement: Achievement,
        session_id: Optional[str],
    ) -> None:
        if achievement.xp_reward:
            await award_xp(tx, user_id, achievement.xp_reward, source="achievement", source_id=achievement.id)
        if achievement.coin_reward:
            await self.reward_ledger.credit(tx, user_id, achievement.coin_reward, reason=f"achievement:{achievement.id}")
        if achievement.lifescore_boost:
            await self.lifescore_ledger.apply_delta(
                tx,
                user_id,
                achievement.lifescore_boost,
                LifeScoreReason.ACHIEVEMENT_REWARD,
                achievement_id=achievement.id,
                session_id=session_id,
            )

    async def progress(self, tx: StoreTransaction) -> list[AchievementProgress]:
        """Held and locked achievements with progress toward each"""
        catalog = await self.store.list_achievements(active_only=True)
        held = {ua.achievement_id: ua for ua in await tx.list_user_achievements()}
        counters = await aggregate_counters(tx)

        result = []
        for achievement in catalog:
            earned = held.get(achievement.id)
            current = COUNTER_FOR_CONDITION[achievement.condition_type](counters)
            required = achievement.condition_value
            if earned is not None:
                current = max(current, required)
            result.append(
                AchievementProgress(
                    achievement=achievement,
                    unlocked=earned is not None,
                    earned_at=earned.earned_at if earned else None,
                    current=current,
                    required=required,
                    percentage=min(100, current * 100 // required),
                )
            )
        return result
