"""
In-memory store

Keeps every user's state in a partition guarded by a per-user asyncio.Lock.
A transaction works on a deep copy of the partition and swaps it in on
success, so a failed operation leaves no trace. Used for development and
tests; nothing is persisted across restarts.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable, Optional

from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.exceptions import DuplicateRecordError, NotFoundError
from lifescore.models import (
    Achievement,
    BehaviorEvent,
    BehaviorEventType,
    LifeScoreHistoryEntry,
    Mission,
    MissionStatus,
    Reward,
    UserAchievement,
    UserMission,
    UserReward,
    UserStats,
)

logger = logging.getLogger(__name__)


@dataclass
class _UserPartition:
    """Everything owned by one user"""
    stats: UserStats
    missions: dict[tuple[str, str], UserMission] = field(default_factory=dict)
    achievements: dict[str, UserAchievement] = field(default_factory=dict)
    rewards: list[UserReward] = field(default_factory=list)
    history: list[LifeScoreHistoryEntry] = field(default_factory=list)
    events: list[BehaviorEvent] = field(default_factory=list)


class InMemoryTransaction(StoreTransaction):
    """Operates on a private copy of one user's partition"""

    def __init__(self, user_id: str, partition: _UserPartition):
        self.user_id = user_id
        self._p = partition

    async def get_stats(self) -> UserStats:
        return self._p.stats.model_copy()

    async def update_stats(self, stats: UserStats, expected_version: int) -> bool:
        if self._p.stats.version != expected_version:
            return False
        self._p.stats = stats.model_copy(update={"version": expected_version + 1})
        return True

    async def get_user_mission(self, mission_id: str, instance_key: str) -> Optional[UserMission]:
        record = self._p.missions.get((mission_id, instance_key))
        return record.model_copy() if record else None

    async def get_active_user_mission(self) -> Optional[UserMission]:
        for record in self._p.missions.values():
            if record.status == MissionStatus.ACTIVE:
                return record.model_copy()
        return None

    async def find_user_mission(
        self, mission_id: str, status: Optional[MissionStatus] = None
    ) -> Optional[UserMission]:
        candidates = [
            r for r in self._p.missions.values()
            if r.mission_id == mission_id and (status is None or r.status == status)
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda r: (r.started_at is not None, r.started_at))
        return latest.model_copy()

    async def insert_user_mission(self, record: UserMission) -> UserMission:
        key = (record.mission_id, record.instance_key)
        if key in self._p.missions:
            raise DuplicateRecordError(
                message="User mission already exists for this instance",
                record_type="user_mission",
                key=key,
                user_id=self.user_id,
            )
        if record.status == MissionStatus.ACTIVE and any(
            r.status == MissionStatus.ACTIVE for r in self._p.missions.values()
        ):
            raise DuplicateRecordError(
                message="User already has an active mission",
                record_type="active_user_mission",
                key=self.user_id,
                user_id=self.user_id,
            )
        self._p.missions[key] = record.model_copy()
        return record

    async def transition_user_mission(self, record: UserMission, expected_status: MissionStatus) -> bool:
        key = (record.mission_id, record.instance_key)
        current = self._p.missions.get(key)
        if current is None or current.status != expected_status:
            return False
        self._p.missions[key] = record.model_copy()
        return True

    async def count_user_missions(self, status: MissionStatus) -> int:
        return sum(1 for r in self._p.missions.values() if r.status == status)

    async def insert_user_achievement(self, record: UserAchievement) -> UserAchievement:
        if record.achievement_id in self._p.achievements:
            raise DuplicateRecordError(
                message="Achievement already awarded",
                record_type="user_achievement",
                key=(self.user_id, record.achievement_id),
                user_id=self.user_id,
            )
        self._p.achievements[record.achievement_id] = record.model_copy()
        return record

    async def list_user_achievements(self) -> list[UserAchievement]:
        return [a.model_copy() for a in self._p.achievements.values()]

    async def insert_user_reward(self, record: UserReward, award_once: bool) -> UserReward:
        if award_once and any(r.reward_id == record.reward_id for r in self._p.rewards):
            raise DuplicateRecordError(
                message="Award-once reward already redeemed",
                record_type="user_reward",
                key=(self.user_id, record.reward_id),
                user_id=self.user_id,
            )
        self._p.rewards.append(record.model_copy())
        return record

    async def count_user_rewards(self, reward_id: Optional[str] = None) -> int:
        return sum(1 for r in self._p.rewards if reward_id is None or r.reward_id == reward_id)

    async def append_lifescore_history(self, entry: LifeScoreHistoryEntry) -> None:
        self._p.history.append(entry)

    async def append_behavior_event(self, event: BehaviorEvent) -> None:
        self._p.events.append(event)

    async def count_behavior_events(self, event_type: BehaviorEventType) -> int:
        return sum(1 for e in self._p.events if e.event_type == event_type)

    async def count_active_days(self) -> int:
        return len({e.created_at.date() for e in self._p.events})


class InMemoryStore(GamificationStore):
    """Process-local store with per-user locking and copy-on-write transactions"""

    def __init__(
        self,
        missions: Iterable[Mission] = (),
        achievements: Iterable[Achievement] = (),
        rewards: Iterable[Reward] = (),
    ):
        self._missions: dict[str, Mission] = {m.id: m for m in missions}
        self._achievements: list[Achievement] = list(achievements)
        self._rewards: dict[str, Reward] = {r.id: r for r in rewards}
        self._partitions: dict[str, _UserPartition] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        logger.info(
            f"InMemoryStore initialized with {len(self._missions)} missions, "
            f"{len(self._achievements)} achievements, {len(self._rewards)} rewards"
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_mission(self, mission_id: str) -> Optional[Mission]:
        return self._missions.get(mission_id)

    async def list_missions(self, active_only: bool = True) -> list[Mission]:
        return [m for m in self._missions.values() if m.is_active or not active_only]

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        return self._rewards.get(reward_id)

    async def list_rewards(self, active_only: bool = True) -> list[Reward]:
        return [r for r in self._rewards.values() if r.is_active or not active_only]

    async def list_achievements(self, active_only: bool = True) -> list[Achievement]:
        return [a for a in self._achievements if a.is_active or not active_only]

    def add_mission(self, mission: Mission) -> None:
        self._missions[mission.id] = mission

    def add_reward(self, reward: Reward) -> None:
        self._rewards[reward.id] = reward

    def add_achievement(self, achievement: Achievement) -> None:
        self._achievements.append(achievement)

    # ------------------------------------------------------------------
    # Users and transactions
    # ------------------------------------------------------------------

    async def create_user(self, user_id: str) -> UserStats:
        async with self._lock_for(user_id):
            if user_id in self._partitions:
                raise DuplicateRecordError(
                    message="User already exists",
                    record_type="user",
                    key=user_id,
                    user_id=user_id,
                )
            self._partitions[user_id] = _UserPartition(stats=UserStats(user_id=user_id))
            logger.info(f"Created stats record for user {user_id}")
            return self._partitions[user_id].stats.model_copy()

    def seed_user(self, stats: UserStats) -> None:
        """Install a starting state for a user (fixtures and imports)"""
        self._partitions[stats.user_id] = _UserPartition(stats=stats.model_copy())

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncIterator[InMemoryTransaction]:
        async with self._lock_for(user_id):
            committed = self._partitions.get(user_id)
            if committed is None:
                raise NotFoundError(
                    message=f"User {user_id} not found",
                    record_type="User",
                    record_id=user_id,
                    user_id=user_id,
                )
            working = copy.deepcopy(committed)
            yield InMemoryTransaction(user_id, working)
            # Only reached when the block exits cleanly
            self._partitions[user_id] = working

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def _partition(self, user_id: str) -> _UserPartition:
        partition = self._partitions.get(user_id)
        if partition is None:
            raise NotFoundError(
                message=f"User {user_id} not found",
                record_type="User",
                record_id=user_id,
                user_id=user_id,
            )
        return partition

    async def read_stats(self, user_id: str) -> UserStats:
        return self._partition(user_id).stats.model_copy()

    async def list_user_missions(
        self, user_id: str, status: Optional[MissionStatus] = None
    ) -> list[UserMission]:
        records = [
            r.model_copy() for r in self._partition(user_id).missions.values()
            if status is None or r.status == status
        ]
        records.sort(key=lambda r: (r.started_at is not None, r.started_at), reverse=True)
        return records

    async def read_user_achievements(self, user_id: str) -> list[UserAchievement]:
        return [a.model_copy() for a in self._partition(user_id).achievements.values()]

    async def list_user_rewards(self, user_id: str) -> list[UserReward]:
        return sorted(
            (r.model_copy() for r in self._partition(user_id).rewards),
            key=lambda r: r.redeemed_at,
            reverse=True,
        )

    async def list_lifescore_history(self, user_id: str, limit: int = 50) -> list[LifeScoreHistoryEntry]:
        return list(reversed(self._partition(user_id).history))[:limit]

    async def list_behavior_events(self, user_id: str, limit: int = 50) -> list[BehaviorEvent]:
        return list(reversed(self._partition(user_id).events))[:limit]
