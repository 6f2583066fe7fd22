"""
Datastore contract consumed by the engine

Only the read/write contract matters to the engine; the two implementations
(InMemoryStore, PostgresStore) differ in storage mechanics only.

Guarantees every implementation must give:
- transaction(user_id) serializes all writes for one user and is
  all-or-nothing: leaving the block with an exception discards every write
- insert_user_mission is unique on (user, mission, instance_key) and on
  "one active record per user"; violations raise DuplicateRecordError
- insert_user_achievement is unique on (user, achievement)
- insert_user_reward is unique on (user, reward) when award_once is set
- transition_user_mission and update_stats are compare-and-set writes
- history and behavior events are append-only
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Optional

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


class StoreTransaction(ABC):
    """Per-user unit of work handed out by GamificationStore.transaction()"""

    user_id: str

    # Stats
    @abstractmethod
    async def get_stats(self) -> UserStats: ...

    @abstractmethod
    async def update_stats(self, stats: UserStats, expected_version: int) -> bool:
        """Write stats if the stored version still equals expected_version"""

    # Missions
    @abstractmethod
    async def get_user_mission(self, mission_id: str, instance_key: str) -> Optional[UserMission]: ...

    @abstractmethod
    async def get_active_user_mission(self) -> Optional[UserMission]: ...

    @abstractmethod
    async def find_user_mission(
        self, mission_id: str, status: Optional[MissionStatus] = None
    ) -> Optional[UserMission]:
        """Most recently started record for the mission, optionally by status"""

    @abstractmethod
    async def insert_user_mission(self, record: UserMission) -> UserMission: ...

    @abstractmethod
    async def transition_user_mission(self, record: UserMission, expected_status: MissionStatus) -> bool:
        """Replace the stored record if its status still equals expected_status"""

    @abstractmethod
    async def count_user_missions(self, status: MissionStatus) -> int: ...

    # Achievements
    @abstractmethod
    async def insert_user_achievement(self, record: UserAchievement) -> UserAchievement: ...

    @abstractmethod
    async def list_user_achievements(self) -> list[UserAchievement]: ...

    # Rewards
    @abstractmethod
    async def insert_user_reward(self, record: UserReward, award_once: bool) -> UserReward: ...

    @abstractmethod
    async def count_user_rewards(self, reward_id: Optional[str] = None) -> int: ...

    # Append-only logs
    @abstractmethod
    async def append_lifescore_history(self, entry: LifeScoreHistoryEntry) -> None: ...

    @abstractmethod
    async def append_behavior_event(self, event: BehaviorEvent) -> None: ...

    @abstractmethod
    async def count_behavior_events(self, event_type: BehaviorEventType) -> int: ...

    @abstractmethod
    async def count_active_days(self) -> int:
        """Distinct calendar dates (UTC) with at least one behavior event"""


class GamificationStore(ABC):
    """Catalog reads, per-user transactions and read-only queries"""

    # Catalog (immutable, safe to read outside a transaction)
    @abstractmethod
    async def get_mission(self, mission_id: str) -> Optional[Mission]: ...

    @abstractmethod
    async def list_missions(self, active_only: bool = True) -> list[Mission]: ...

    @abstractmethod
    async def get_reward(self, reward_id: str) -> Optional[Reward]: ...

    @abstractmethod
    async def list_rewards(self, active_only: bool = True) -> list[Reward]: ...

    @abstractmethod
    async def list_achievements(self, active_only: bool = True) -> list[Achievement]:
        """Catalog order is evaluation order"""

    # Users
    @abstractmethod
    async def create_user(self, user_id: str) -> UserStats:
        """Create a stats row with defaults; DuplicateRecordError if it exists"""

    @abstractmethod
    def transaction(self, user_id: str) -> AbstractAsyncContextManager[StoreTransaction]:
        """Serialized, all-or-nothing unit of work; NotFoundError for unknown users"""

    # Read-only queries (committed state)
    @abstractmethod
    async def read_stats(self, user_id: str) -> UserStats: ...

    @abstractmethod
    async def list_user_missions(
        self, user_id: str, status: Optional[MissionStatus] = None
    ) -> list[UserMission]: ...

    @abstractmethod
    async def read_user_achievements(self, user_id: str) -> list[UserAchievement]: ...

    @abstractmethod
    async def list_user_rewards(self, user_id: str) -> list[UserReward]: ...

    @abstractmethod
    async def list_lifescore_history(self, user_id: str, limit: int = 50) -> list[LifeScoreHistoryEntry]:
        """Newest first"""

    @abstractmethod
    async def list_behavior_events(self, user_id: str, limit: int = 50) -> list[BehaviorEvent]:
        """Newest first"""

    async def close(self) -> None:
        """Release resources held by the store"""
        return None
