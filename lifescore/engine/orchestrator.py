"""
Gamification Orchestrator

Entry point for the web layer. Every call takes the caller's RequestContext
first. Each mutating call runs in one per-user datastore transaction:

    primary mutation → achievement evaluation → commit

so an error anywhere leaves XP, coins, LifeScore and streak untouched.
"""

import logging
from typing import Any, Mapping, Optional, Union

from lifescore.db.store import GamificationStore
from lifescore.engine import scenario
from lifescore.engine.achievements import AchievementEvaluator
from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.missions import MissionLifecycleManager
from lifescore.engine.progression import award_xp, level_progress, lifescore_status
from lifescore.engine.rewards import RewardLedger
from lifescore.engine.stats import record_event
from lifescore.exceptions import RateLimitExceeded
from lifescore.models import (
    Achievement,
    AchievementProgress,
    BehaviorEventType,
    LifeScoreHistoryEntry,
    LifeScoreReason,
    MissionAvailability,
    MissionStatus,
    RedemptionResult,
    RequestContext,
    Reward,
    RewardResult,
    ScenarioInputs,
    ScenarioResult,
    StatsSnapshot,
    SuggestedMission,
    UserMission,
    UserReward,
    UserStats,
)
from lifescore.resilience.metrics import record_rate_limited, record_scenario
from lifescore.utils.datetime_helpers import Clock, now_utc
from lifescore.utils.ratelimit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

RawScenarioInputs = Union[ScenarioInputs, Mapping[str, Any], None]


def snapshot(stats: UserStats) -> StatsSnapshot:
    """Read model for a user's stats"""
    return StatsSnapshot(
        user_id=stats.user_id,
        lifescore=stats.lifescore,
        lifescore_status=lifescore_status(stats.lifescore),
        xp=stats.xp,
        level=stats.level,
        level_progress=level_progress(stats.xp),
        coins=stats.coins,
        streak=stats.current_streak,
        longest_streak=stats.longest_streak,
    )


class GamificationOrchestrator:
    """Composes the ledgers, mission manager, evaluator and predictor"""

    def __init__(
        self,
        store: GamificationStore,
        lifescore_ledger: LifeScoreLedger,
        reward_ledger: RewardLedger,
        missions: MissionLifecycleManager,
        evaluator: AchievementEvaluator,
        narrator: Optional[scenario.ScenarioNarrator] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        clock: Clock = now_utc,
    ):
        self.store = store
        self.lifescore_ledger = lifescore_ledger
        self.reward_ledger = reward_ledger
        self.missions = missions
        self.evaluator = evaluator
        self.narrator = narrator
        self.rate_limiter = rate_limiter
        self.clock = clock

    def _check_rate_limit(self, ctx: RequestContext, operation: str) -> None:
        if self.rate_limiter is None:
            return
        key = f"{operation}:{ctx.rate_limit_key}"
        allowed, retry_after = self.rate_limiter.acquire(key)
        if not allowed:
            record_rate_limited(operation)
            raise RateLimitExceeded(
                message=f"Rate limit exceeded for {operation}",
                key=key,
                retry_after=retry_after,
                user_id=ctx.user_id,
                request_id=ctx.request_id,
                operation=operation,
            )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, ctx: RequestContext) -> StatsSnapshot:
        """Register a user with default stats"""
        stats = await self.store.create_user(ctx.user_id)
        return snapshot(stats)

    async def get_stats(self, ctx: RequestContext) -> StatsSnapshot:
        return snapshot(await self.store.read_stats(ctx.user_id))

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------

    async def start_mission(self, ctx: RequestContext, mission_id: str) -> UserMission:
        async with self.store.transaction(ctx.user_id) as tx:
            record = await self.missions.start(tx, ctx.user_id, mission_id, session_id=ctx.session_id)
            await self.evaluator.evaluate(tx, ctx.user_id, session_id=ctx.session_id)
        return record

    async def complete_mission(self, ctx: RequestContext, mission_id: str) -> RewardResult:
        """
        Complete the user's active instance of a mission

        Returns:
            RewardResult with the mission's own rewards plus any achievements
            the completion unlocked
        """
        async with self.store.transaction(ctx.user_id) as tx:
            completion = await self.missions.complete(tx, ctx.user_id, mission_id, session_id=ctx.session_id)
            unlocked = await self.evaluator.evaluate(tx, ctx.user_id, session_id=ctx.session_id)
            stats = await tx.get_stats()

        return RewardResult(
            user_mission=completion.user_mission,
            xp_earned=completion.xp.xp_awarded,
            coins_earned=completion.coins_earned,
            lifescore_delta=completion.lifescore.applied_delta,
            level_up=stats.level > completion.xp.old_level,
            new_level=stats.level,
            current_streak=stats.current_streak,
            achievements_unlocked=unlocked,
            stats=snapshot(stats),
        )

    async def fail_mission(self, ctx: RequestContext, mission_id: str) -> UserMission:
        async with self.store.transaction(ctx.user_id) as tx:
            record = await self.missions.fail(tx, ctx.user_id, mission_id, session_id=ctx.session_id)
        return record

    async def update_mission_progress(self, ctx: RequestContext, mission_id: str, progress: int) -> UserMission:
        async with self.store.transaction(ctx.user_id) as tx:
            record = await self.missions.update_progress(tx, ctx.user_id, mission_id, progress)
        return record

    async def list_missions(self, ctx: RequestContext) -> list[MissionAvailability]:
        return await self.missions.availability(ctx.user_id)

    async def list_user_missions(
        self, ctx: RequestContext, status: Optional[MissionStatus] = None
    ) -> list[UserMission]:
        return await self.missions.list_user_missions(ctx.user_id, status=status)

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    async def redeem_reward(self, ctx: RequestContext, reward_id: str) -> RedemptionResult:
        async with self.store.transaction(ctx.user_id) as tx:
            redemption = await self.reward_ledger.redeem(tx, ctx.user_id, reward_id, session_id=ctx.session_id)
            unlocked = await self.evaluator.evaluate(tx, ctx.user_id, session_id=ctx.session_id)
            stats = await tx.get_stats()

        return RedemptionResult(
            redemption=redemption,
            coins_spent=redemption.coins_spent,
            balance=stats.coins,
            achievements_unlocked=unlocked,
        )

    async def list_rewards(self, ctx: RequestContext) -> list[Reward]:
        return await self.store.list_rewards(active_only=True)

    async def list_user_rewards(self, ctx: RequestContext) -> list[UserReward]:
        return await self.reward_ledger.list_user_rewards(ctx.user_id)

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    async def simulate_scenario(
        self,
        ctx: RequestContext,
        inputs: RawScenarioInputs,
        apply: bool = False,
    ) -> ScenarioResult:
        """
        Deterministic what-if projection; optionally applied to live stats

        Apply mode feeds the projected delta into the LifeScore ledger
        (scenario_penalty for a negative delta, streak_bonus otherwise) and
        the projected XP into award_xp, then evaluates achievements. Preview
        mode only records the simulation event.
        """
        self._check_rate_limit(ctx, "simulate_scenario")
        prediction = scenario.predict(scenario.normalize_inputs(inputs))

        # Provider I/O happens before the transaction so no user lock is held
        ai_narrative, source = None, "deterministic"
        if self.narrator is not None:
            ai_narrative, source = await self.narrator.enrich(prediction)
            if source == "deterministic":
                ai_narrative = None

        lifescore_change = xp = None
        async with self.store.transaction(ctx.user_id) as tx:
            before = await tx.get_stats()
            if apply:
                reason = (
                    LifeScoreReason.SCENARIO_PENALTY if prediction.lifescore_delta < 0
                    else LifeScoreReason.STREAK_BONUS
                )
                lifescore_change = await self.lifescore_ledger.apply_delta(
                    tx, ctx.user_id, prediction.lifescore_delta, reason, session_id=ctx.session_id
                )
                xp = await award_xp(tx, ctx.user_id, prediction.xp_reward, source="scenario")
            await record_event(
                tx,
                BehaviorEventType.SCENARIO_SIMULATE,
                self.clock(),
                event_data={
                    "inputs": prediction.inputs.model_dump(mode="json"),
                    "lifescore_delta": prediction.lifescore_delta,
                    "xp_reward": prediction.xp_reward,
                    "risk_level": prediction.risk_level.value,
                    "applied": apply,
                },
                lifescore_before=before.lifescore,
                lifescore_after=lifescore_change.new_score if lifescore_change else before.lifescore,
                session_id=ctx.session_id,
            )
            # Previews stay read-only on stats; their events are counted on the next evaluation
            unlocked = []
            if apply:
                unlocked = await self.evaluator.evaluate(tx, ctx.user_id, session_id=ctx.session_id)
            stats = await tx.get_stats()

        record_scenario("apply" if apply else "preview")
        logger.info(
            f"Scenario for user {ctx.user_id}: delta +{prediction.lifescore_delta}, "
            f"xp {prediction.xp_reward}, risk {prediction.risk_level.value}, applied={apply}"
        )
        return ScenarioResult(
            prediction=prediction,
            ai_narrative=ai_narrative,
            narrative_source=source,
            applied=apply,
            lifescore_change=lifescore_change,
            xp_award=xp,
            achievements_unlocked=unlocked,
            stats=snapshot(stats),
        )

    async def recommend_missions(self, ctx: RequestContext, inputs: RawScenarioInputs) -> list[SuggestedMission]:
        self._check_rate_limit(ctx, "recommend_missions")
        return scenario.recommend_missions(scenario.normalize_inputs(inputs))

    # ------------------------------------------------------------------
    # Achievements and history
    # ------------------------------------------------------------------

    async def evaluate_achievements(self, ctx: RequestContext) -> list[Achievement]:
        async with self.store.transaction(ctx.user_id) as tx:
            unlocked = await self.evaluator.evaluate(tx, ctx.user_id, session_id=ctx.session_id)
        return unlocked

    async def list_achievements(self, ctx: RequestContext) -> list[AchievementProgress]:
        async with self.store.transaction(ctx.user_id) as tx:
            progress = await self.evaluator.progress(tx)
        return progress

    async def get_lifescore_history(self, ctx: RequestContext, limit: int = 50) -> list[LifeScoreHistoryEntry]:
        return await self.lifescore_ledger.get_history(ctx.user_id, limit=limit)
