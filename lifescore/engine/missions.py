"""
Mission Lifecycle Manager

State machine per (user, mission instance):

    available → active → completed
                       → failed

locked is a gate in front of available for missions whose required_level is
above the user's level. At most one mission per user is active at a time.

Completing a mission grants, in one transaction:
- LifeScore: mission.lifescore_impact (reason mission_complete, clamped)
- XP: mission.xp_reward
- Coins: mission.coin_reward, or by difficulty (easy 10, medium 20, hard/expert 30)
- Streak: one activity for today
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.progression import award_xp, level_from_xp
from lifescore.engine.rewards import RewardLedger
from lifescore.engine.stats import record_event, save_stats
from lifescore.exceptions import ConflictError, DuplicateRecordError, NotFoundError, ValidationError
from lifescore.models import (
    BehaviorEventType,
    Difficulty,
    LifeScoreChange,
    LifeScoreReason,
    Mission,
    MissionAvailability,
    MissionStatus,
    Recurrence,
    StreakUpdate,
    UserMission,
    XPAward,
)
from lifescore.resilience.metrics import record_mission_transition
from lifescore.utils.datetime_helpers import Clock, iso_week_key, now_utc, utc_date

logger = logging.getLogger(__name__)

COIN_REWARDS = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 20,
    Difficulty.HARD: 30,
    Difficulty.EXPERT: 30,
}

STREAK_MILESTONES = (7, 14, 30, 100)


def coin_reward_for(mission: Mission) -> int:
    """Explicit coin_reward wins; otherwise the difficulty table applies"""
    if mission.coin_reward is not None:
        return mission.coin_reward
    return COIN_REWARDS[mission.difficulty]


def instance_key(mission: Mission, at: datetime) -> str:
    """Recurrence instance a mission attempt belongs to"""
    if mission.recurrence == Recurrence.DAILY:
        return utc_date(at).isoformat()
    if mission.recurrence == Recurrence.WEEKLY:
        return iso_week_key(utc_date(at))
    return "once"


@dataclass
class MissionCompletion:
    """Everything a completion changed"""
    user_mission: UserMission
    lifescore: LifeScoreChange
    xp: XPAward
    coins_earned: int
    streak: StreakUpdate


class MissionLifecycleManager:
    """Owns per-user mission state transitions and completion rewards"""

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

    async def _get_mission(self, mission_id: str, user_id: str, active_only: bool = True) -> Mission:
        mission = await self.store.get_mission(mission_id)
        if mission is None or (active_only and not mission.is_active):
            raise NotFoundError(
                message=f"Mission {mission_id} not found",
                record_type="Mission",
                record_id=mission_id,
                user_id=user_id,
            )
        return mission

    async def _get_active_record(self, tx: StoreTransaction, user_id: str, mission_id: str, operation: str) -> UserMission:
        record = await tx.find_user_mission(mission_id, status=MissionStatus.ACTIVE)
        if record is None:
            latest = await tx.find_user_mission(mission_id)
            state = latest.status.value if latest else MissionStatus.AVAILABLE.value
            raise ConflictError(
                message=f"Mission {mission_id} is not active (status: {state})",
                current_state=state,
                user_id=user_id,
                operation=operation,
            )
        return record

    async def _transition(self, tx: StoreTransaction, updated: UserMission, operation: str) -> None:
        if not await tx.transition_user_mission(updated, expected_status=MissionStatus.ACTIVE):
            raise ConflictError(
                message=f"Mission {updated.mission_id} is no longer active",
                current_state="changed",
                user_id=updated.user_id,
                operation=operation,
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(
        self,
        tx: StoreTransaction,
        user_id: str,
        mission_id: str,
        session_id: Optional[str] = None,
    ) -> UserMission:
        """
        Start a mission

        Returns the existing record when the same mission is already active.

        Raises:
            NotFoundError: mission missing or inactive
            ConflictError: another mission active, mission locked, or this
                instance already completed/failed
        """
        mission = await self._get_mission(mission_id, user_id)
        now = self.clock()
        key = instance_key(mission, now)

        existing = await tx.get_user_mission(mission_id, key)
        if existing is not None:
            if existing.status == MissionStatus.ACTIVE:
                logger.info(f"Mission {mission_id} already active for user {user_id}")
                return existing
            raise ConflictError(
                message=f"Mission {mission_id} already {existing.status.value}",
                current_state=existing.status.value,
                user_id=user_id,
                operation="start_mission",
            )

        active = await tx.get_active_user_mission()
        if active is not None and active.mission_id == mission_id:
            # Still running from an earlier recurrence instance
            return active
        if active is not None:
            raise ConflictError(
                message=f"Mission {active.mission_id} is already active; complete or fail it first",
                current_state=MissionStatus.ACTIVE.value,
                user_id=user_id,
                operation="start_mission",
                context={"active_mission_id": active.mission_id},
            )

        stats = await tx.get_stats()
        if level_from_xp(stats.xp) < mission.required_level:
            raise ConflictError(
                message=f"Mission {mission_id} unlocks at level {mission.required_level}",
                current_state=MissionStatus.LOCKED.value,
                user_id=user_id,
                operation="start_mission",
            )

        record = UserMission(
            id=str(uuid4()),
            user_id=user_id,
            mission_id=mission_id,
            instance_key=key,
            status=MissionStatus.ACTIVE,
            progress=0,
            started_at=now,
        )
        try:
            await tx.insert_user_mission(record)
        except DuplicateRecordError as e:
            # Translate the datastore's uniqueness guard into "already started"
            existing = await tx.get_user_mission(mission_id, key)
            if existing is not None and existing.status == MissionStatus.ACTIVE:
                return existing
            raise ConflictError(
                message=f"Mission {mission_id} could not be started",
                current_state=existing.status.value if existing else MissionStatus.ACTIVE.value,
                user_id=user_id,
                operation="start_mission",
                cause=e,
            )

        await record_event(
            tx,
            BehaviorEventType.MISSION_START,
            now,
            event_data={"mission_id": mission_id, "instance_key": key},
            lifescore_before=stats.lifescore,
            lifescore_after=stats.lifescore,
            session_id=session_id,
        )
        record_mission_transition("started")
        logger.info(f"User {user_id} started mission {mission_id} ({key})")
        return record

    async def complete(
        self,
        tx: StoreTransaction,
        user_id: str,
        mission_id: str,
        session_id: Optional[str] = None,
    ) -> MissionCompletion:
        """
        Complete the active instance of a mission and grant its rewards

        Raises:
            NotFoundError: mission missing
            ConflictError: no active record, or it changed under us
        """
        mission = await self._get_mission(mission_id, user_id, active_only=False)
        record = await self._get_active_record(tx, user_id, mission_id, "complete_mission")
        now = self.clock()

        lifescore = await self.lifescore_ledger.apply_delta(
            tx,
            user_id,
            mission.lifescore_impact,
            LifeScoreReason.MISSION_COMPLETE,
            mission_id=mission_id,
            session_id=session_id,
        )
        xp = await award_xp(tx, user_id, mission.xp_reward, source="mission", source_id=mission_id)
        coins = coin_reward_for(mission)
        await self.reward_ledger.credit(tx, user_id, coins, reason=f"mission:{mission_id}")
        streak = await self.register_activity(tx, user_id, session_id=session_id)

        completed = record.model_copy(update={
            "status": MissionStatus.COMPLETED,
            "progress": 100,
            "completed_at": now,
            "xp_earned": mission.xp_reward,
            "coins_earned": coins,
            "lifescore_change": lifescore.applied_delta,
        })
        await self._transition(tx, completed, "complete_mission")

        await record_event(
            tx,
            BehaviorEventType.MISSION_COMPLETE,
            now,
            event_data={
                "mission_id": mission_id,
                "instance_key": record.instance_key,
                "xp_earned": mission.xp_reward,
                "coins_earned": coins,
            },
            lifescore_before=lifescore.old_score,
            lifescore_after=lifescore.new_score,
            session_id=session_id,
        )
        record_mission_transition("completed")
        logger.info(
            f"User {user_id} completed mission {mission_id}: "
            f"+{mission.xp_reward} XP, +{coins} coins, LifeScore {lifescore.applied_delta:+d}"
        )
        return MissionCompletion(
            user_mission=completed,
            lifescore=lifescore,
            xp=xp,
            coins_earned=coins,
            streak=streak,
        )

    async def fail(
        self,
        tx: StoreTransaction,
        user_id: str,
        mission_id: str,
        session_id: Optional[str] = None,
    ) -> UserMission:
        """Give up on the active instance; no reward"""
        await self._get_mission(mission_id, user_id, active_only=False)
        record = await self._get_active_record(tx, user_id, mission_id, "fail_mission")
        now = self.clock()

        failed = record.model_copy(update={"status": MissionStatus.FAILED, "completed_at": now})
        await self._transition(tx, failed, "fail_mission")

        stats = await tx.get_stats()
        await record_event(
            tx,
            BehaviorEventType.MISSION_FAIL,
            now,
            event_data={"mission_id": mission_id, "instance_key": record.instance_key, "progress": record.progress},
            lifescore_before=stats.lifescore,
            lifescore_after=stats.lifescore,
            session_id=session_id,
        )
        record_mission_transition("failed")
        logger.info(f"User {user_id} failed mission {mission_id}")
        return failed

    async def update_progress(
        self,
        tx: StoreTransaction,
        user_id: str,
        mission_id: str,
        progress: int,
    ) -> UserMission:
        """Record partial progress (0-99) on the active instance; never regresses"""
        if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 99:
            raise ValidationError(
                message="Progress must be an integer between 0 and 99; complete the mission to reach 100",
                field="progress",
                value=progress,
                user_id=user_id,
            )
        record = await self._get_active_record(tx, user_id, mission_id, "update_mission_progress")
        if progress < record.progress:
            raise ValidationError(
                message=f"Progress cannot go back from {record.progress} to {progress}",
                field="progress",
                value=progress,
                user_id=user_id,
            )
        if progress == record.progress:
            return record

        updated = record.model_copy(update={"progress": progress})
        await self._transition(tx, updated, "update_mission_progress")
        logger.debug(f"User {user_id} mission {mission_id} progress {record.progress} → {progress}")
        return updated

    # ------------------------------------------------------------------
    # Streak
    # ------------------------------------------------------------------

    async def register_activity(
        self,
        tx: StoreTransaction,
        user_id: str,
        session_id: Optional[str] = None,
    ) -> StreakUpdate:
        """
        Count today as an active day

        Logic:
        - First activity ever: streak starts at 1
        - Same day as the last activity: no change
        - Next day: streak + 1
        - Gap of more than one day: reset to 1
        - longest_streak follows the maximum
        """
        now = self.clock()
        today = utc_date(now)
        stats = await tx.get_stats()
        old_streak = stats.current_streak
        last = stats.last_active_date

        if last == today:
            return StreakUpdate(
                current_streak=stats.current_streak,
                longest_streak=stats.longest_streak,
                old_streak=old_streak,
            )

        if last is not None and last == today - timedelta(days=1):
            current = old_streak + 1
        else:
            if last is not None and old_streak:
                logger.info(
                    f"User {user_id} streak broken. Was {old_streak}, gap was {(today - last).days} days"
                )
            current = 1

        longest = max(stats.longest_streak, current)
        await save_stats(
            tx,
            stats.model_copy(update={
                "current_streak": current,
                "longest_streak": longest,
                "last_active_date": today,
            }),
            stats.version,
            operation="update_streak",
        )

        milestone = current if current in STREAK_MILESTONES else None
        if milestone:
            await record_event(
                tx,
                BehaviorEventType.STREAK_MILESTONE,
                now,
                event_data={"streak": milestone},
                lifescore_before=stats.lifescore,
                lifescore_after=stats.lifescore,
                session_id=session_id,
            )
            logger.info(f"User {user_id} reached a {milestone}-day streak")

        return StreakUpdate(
            current_streak=current,
            longest_streak=longest,
            old_streak=old_streak,
            milestone_reached=milestone,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_user_missions(self, user_id: str, status: Optional[MissionStatus] = None) -> list[UserMission]:
        return await self.store.list_user_missions(user_id, status=status)

    async def availability(self, user_id: str) -> list[MissionAvailability]:
        """Active catalog annotated with the user's state for the current instance"""
        stats = await self.store.read_stats(user_id)
        level = level_from_xp(stats.xp)
        now = self.clock()
        records = {
            (r.mission_id, r.instance_key): r
            for r in await self.store.list_user_missions(user_id)
        }

        result = []
        for mission in await self.store.list_missions(active_only=True):
            record = records.get((mission.id, instance_key(mission, now)))
            if record is not None:
                status = record.status
            elif level < mission.required_level:
                status = MissionStatus.LOCKED
            else:
                status = MissionStatus.AVAILABLE
            result.append(MissionAvailability(mission=mission, status=status, user_mission=record))
        return result
