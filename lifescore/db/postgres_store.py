"""PostgreSQL store (psycopg 3, async pool)"""
import logging
from contextlib import asynccontextmanager
from importlib import resources
from typing import AsyncIterator, Iterable, Optional

import psycopg
from psycopg.types.json import Jsonb

from lifescore.db.connection import Database
from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.exceptions import (
    DuplicateRecordError,
    LifeScoreError,
    NotFoundError,
    wrap_external_exception,
)
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

_USER_MISSION_COLUMNS = (
    "id, user_id, mission_id, instance_key, status, progress, started_at, completed_at, "
    "xp_earned, coins_earned, lifescore_change"
)
_STATS_COLUMNS = (
    "user_id, lifescore, xp, level, coins, coins_earned_total, current_streak, "
    "longest_streak, last_active_date, version"
)


class PostgresTransaction(StoreTransaction):
    """Runs on one connection inside BEGIN ... COMMIT with the user's advisory lock held"""

    def __init__(self, conn: psycopg.AsyncConnection, user_id: str):
        self.conn = conn
        self.user_id = user_id

    async def _fetchone(self, query: str, params: tuple) -> Optional[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchone()

    async def _fetchall(self, query: str, params: tuple) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def _execute(self, query: str, params: tuple) -> int:
        async with self.conn.cursor() as cur:
            await cur.execute(query, params)
            return cur.rowcount

    # Stats

    async def get_stats(self) -> UserStats:
        row = await self._fetchone(
            f"SELECT {_STATS_COLUMNS} FROM user_stats WHERE user_id = %s FOR UPDATE",
            (self.user_id,)
        )
        if not row:
            raise NotFoundError(
                message=f"User {self.user_id} not found",
                record_type="User",
                record_id=self.user_id,
                user_id=self.user_id,
            )
        return UserStats(**row)

    async def update_stats(self, stats: UserStats, expected_version: int) -> bool:
        updated = await self._execute(
            """
            UPDATE user_stats
            SET lifescore = %s,
                xp = %s,
                level = %s,
                coins = %s,
                coins_earned_total = %s,
                current_streak = %s,
                longest_streak = %s,
                last_active_date = %s,
                version = version + 1,
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = %s AND version = %s
            """,
            (
                stats.lifescore,
                stats.xp,
                stats.level,
                stats.coins,
                stats.coins_earned_total,
                stats.current_streak,
                stats.longest_streak,
                stats.last_active_date,
                self.user_id,
                expected_version,
            )
        )
        return updated == 1

    # Missions

    async def get_user_mission(self, mission_id: str, instance_key: str) -> Optional[UserMission]:
        row = await self._fetchone(
            f"""
            SELECT {_USER_MISSION_COLUMNS} FROM user_missions
            WHERE user_id = %s AND mission_id = %s AND instance_key = %s
            """,
            (self.user_id, mission_id, instance_key)
        )
        return UserMission(**row) if row else None

    async def get_active_user_mission(self) -> Optional[UserMission]:
        row = await self._fetchone(
            f"SELECT {_USER_MISSION_COLUMNS} FROM user_missions WHERE user_id = %s AND status = 'active'",
            (self.user_id,)
        )
        return UserMission(**row) if row else None

    async def find_user_mission(
        self, mission_id: str, status: Optional[MissionStatus] = None
    ) -> Optional[UserMission]:
        row = await self._fetchone(
            f"""
            SELECT {_USER_MISSION_COLUMNS} FROM user_missions
            WHERE user_id = %s AND mission_id = %s AND (%s::text IS NULL OR status = %s::text)
            ORDER BY started_at DESC NULLS LAST
            LIMIT 1
            """,
            (self.user_id, mission_id, status.value if status else None, status.value if status else None)
        )
        return UserMission(**row) if row else None

    async def insert_user_mission(self, record: UserMission) -> UserMission:
        try:
            # Savepoint: a uniqueness violation must not abort the outer transaction
            async with self.conn.transaction():
                await self._execute(
                    f"""
                    INSERT INTO user_missions ({_USER_MISSION_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        record.id,
                        record.user_id,
                        record.mission_id,
                        record.instance_key,
                        record.status.value,
                        record.progress,
                        record.started_at,
                        record.completed_at,
                        record.xp_earned,
                        record.coins_earned,
                        record.lifescore_change,
                    )
                )
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateRecordError(
                message="User mission violates a uniqueness constraint",
                record_type="user_mission",
                key=(record.mission_id, record.instance_key),
                user_id=self.user_id,
                cause=e,
            )
        return record

    async def transition_user_mission(self, record: UserMission, expected_status: MissionStatus) -> bool:
        updated = await self._execute(
            """
            UPDATE user_missions
            SET status = %s,
                progress = %s,
                completed_at = %s,
                xp_earned = %s,
                coins_earned = %s,
                lifescore_change = %s
            WHERE id = %s AND user_id = %s AND status = %s
            """,
            (
                record.status.value,
                record.progress,
                record.completed_at,
                record.xp_earned,
                record.coins_earned,
                record.lifescore_change,
                record.id,
                self.user_id,
                expected_status.value,
            )
        )
        return updated == 1

    async def count_user_missions(self, status: MissionStatus) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) AS n FROM user_missions WHERE user_id = %s AND status = %s",
            (self.user_id, status.value)
        )
        return int(row["n"])

    # Achievements

    async def insert_user_achievement(self, record: UserAchievement) -> UserAchievement:
        try:
            async with self.conn.transaction():
                await self._execute(
                    """
                    INSERT INTO user_achievements (user_id, achievement_id, earned_at, metadata)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (
                        record.user_id,
                        record.achievement_id,
                        record.earned_at,
                        Jsonb(record.metadata) if record.metadata is not None else None,
                    )
                )
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateRecordError(
                message="Achievement already awarded",
                record_type="user_achievement",
                key=(record.user_id, record.achievement_id),
                user_id=self.user_id,
                cause=e,
            )
        return record

    async def list_user_achievements(self) -> list[UserAchievement]:
        rows = await self._fetchall(
            "SELECT user_id, achievement_id, earned_at, metadata FROM user_achievements WHERE user_id = %s",
            (self.user_id,)
        )
        return [UserAchievement(**row) for row in rows]

    # Rewards

    async def insert_user_reward(self, record: UserReward, award_once: bool) -> UserReward:
        # award_once is enforced by the partial unique index on badge rows
        try:
            async with self.conn.transaction():
                await self._execute(
                    """
                    INSERT INTO user_rewards
                        (id, user_id, reward_id, reward_type, coins_spent, redemption_token, status, redeemed_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        record.id,
                        record.user_id,
                        record.reward_id,
                        record.reward_type.value,
                        record.coins_spent,
                        record.redemption_token,
                        record.status,
                        record.redeemed_at,
                    )
                )
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateRecordError(
                message="Award-once reward already redeemed",
                record_type="user_reward",
                key=(record.user_id, record.reward_id),
                user_id=self.user_id,
                cause=e,
            )
        return record

    async def count_user_rewards(self, reward_id: Optional[str] = None) -> int:
        row = await self._fetchone(
            """
            SELECT COUNT(*) AS n FROM user_rewards
            WHERE user_id = %s AND status = 'redeemed' AND (%s::text IS NULL OR reward_id = %s::text)
            """,
            (self.user_id, reward_id, reward_id)
        )
        return int(row["n"])

    # Append-only logs

    async def append_lifescore_history(self, entry: LifeScoreHistoryEntry) -> None:
        await self._execute(
            """
            INSERT INTO lifescore_history
                (user_id, old_score, new_score, change_amount, reason, mission_id, achievement_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                entry.user_id,
                entry.old_score,
                entry.new_score,
                entry.change_amount,
                entry.reason.value,
                entry.mission_id,
                entry.achievement_id,
                entry.created_at,
            )
        )

    async def append_behavior_event(self, event: BehaviorEvent) -> None:
        await self._execute(
            """
            INSERT INTO behavior_events
                (user_id, event_type, event_data, lifescore_before, lifescore_after, session_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                event.user_id,
                event.event_type.value,
                Jsonb(event.event_data),
                event.lifescore_before,
                event.lifescore_after,
                event.session_id,
                event.created_at,
            )
        )

    async def count_behavior_events(self, event_type: BehaviorEventType) -> int:
        row = await self._fetchone(
            "SELECT COUNT(*) AS n FROM behavior_events WHERE user_id = %s AND event_type = %s",
            (self.user_id, event_type.value)
        )
        return int(row["n"])

    async def count_active_days(self) -> int:
        row = await self._fetchone(
            """
            SELECT COUNT(DISTINCT (created_at AT TIME ZONE 'UTC')::date) AS n
            FROM behavior_events WHERE user_id = %s
            """,
            (self.user_id,)
        )
        return int(row["n"])


class PostgresStore(GamificationStore):
    """GamificationStore backed by PostgreSQL; see schema.sql"""

    def __init__(self, database: Database):
        self.db = database

    async def _fetchone(self, query: str, params: tuple) -> Optional[dict]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone()

    async def _fetchall(self, query: str, params: tuple) -> list[dict]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    # Catalog

    async def get_mission(self, mission_id: str) -> Optional[Mission]:
        row = await self._fetchone("SELECT * FROM missions WHERE id = %s", (mission_id,))
        return Mission(**row) if row else None

    async def list_missions(self, active_only: bool = True) -> list[Mission]:
        rows = await self._fetchall(
            "SELECT * FROM missions WHERE is_active OR NOT %s ORDER BY id",
            (active_only,)
        )
        return [Mission(**row) for row in rows]

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        row = await self._fetchone("SELECT * FROM rewards WHERE id = %s", (reward_id,))
        return Reward(**row) if row else None

    async def list_rewards(self, active_only: bool = True) -> list[Reward]:
        rows = await self._fetchall(
            "SELECT * FROM rewards WHERE is_active OR NOT %s ORDER BY coins_cost, id",
            (active_only,)
        )
        return [Reward(**row) for row in rows]

    async def list_achievements(self, active_only: bool = True) -> list[Achievement]:
        rows = await self._fetchall(
            "SELECT * FROM achievements WHERE is_active OR NOT %s ORDER BY sort_order, id",
            (active_only,)
        )
        return [Achievement(**row) for row in rows]

    # Users and transactions

    async def create_user(self, user_id: str) -> UserStats:
        try:
            row = await self._insert_user(user_id)
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateRecordError(
                message="User already exists",
                record_type="user",
                key=user_id,
                user_id=user_id,
                cause=e,
            )
        logger.info(f"Created stats record for user {user_id}")
        return UserStats(**row)

    async def _insert_user(self, user_id: str) -> dict:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"INSERT INTO user_stats (user_id) VALUES (%s) RETURNING {_STATS_COLUMNS}",
                    (user_id,)
                )
                row = await cur.fetchone()
            await conn.commit()
            return row

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncIterator[PostgresTransaction]:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        # Serializes compound operations per user; released at COMMIT/ROLLBACK
                        await cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (user_id,))
                        await cur.execute("SELECT 1 FROM user_stats WHERE user_id = %s", (user_id,))
                        if await cur.fetchone() is None:
                            raise NotFoundError(
                                message=f"User {user_id} not found",
                                record_type="User",
                                record_id=user_id,
                                user_id=user_id,
                            )
                    yield PostgresTransaction(conn, user_id)
        except LifeScoreError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="transaction", user_id=user_id)

    # Read-only queries

    async def read_stats(self, user_id: str) -> UserStats:
        row = await self._fetchone(f"SELECT {_STATS_COLUMNS} FROM user_stats WHERE user_id = %s", (user_id,))
        if not row:
            raise NotFoundError(
                message=f"User {user_id} not found",
                record_type="User",
                record_id=user_id,
                user_id=user_id,
            )
        return UserStats(**row)

    async def list_user_missions(
        self, user_id: str, status: Optional[MissionStatus] = None
    ) -> list[UserMission]:
        rows = await self._fetchall(
            f"""
            SELECT {_USER_MISSION_COLUMNS} FROM user_missions
            WHERE user_id = %s AND (%s::text IS NULL OR status = %s::text)
            ORDER BY started_at DESC NULLS LAST
            """,
            (user_id, status.value if status else None, status.value if status else None)
        )
        return [UserMission(**row) for row in rows]

    async def read_user_achievements(self, user_id: str) -> list[UserAchievement]:
        rows = await self._fetchall(
            "SELECT user_id, achievement_id, earned_at, metadata FROM user_achievements WHERE user_id = %s",
            (user_id,)
        )
        return [UserAchievement(**row) for row in rows]

    async def list_user_rewards(self, user_id: str) -> list[UserReward]:
        rows = await self._fetchall(
            """
            SELECT id, user_id, reward_id, reward_type, coins_spent, redemption_token, status, redeemed_at
            FROM user_rewards WHERE user_id = %s ORDER BY redeemed_at DESC
            """,
            (user_id,)
        )
        return [UserReward(**row) for row in rows]

    async def list_lifescore_history(self, user_id: str, limit: int = 50) -> list[LifeScoreHistoryEntry]:
        rows = await self._fetchall(
            """
            SELECT user_id, old_score, new_score, change_amount, reason, mission_id, achievement_id, created_at
            FROM lifescore_history WHERE user_id = %s
            ORDER BY created_at DESC, id DESC
            LIMIT %s
            """,
            (user_id, limit)
        )
        return [LifeScoreHistoryEntry(**row) for row in rows]

    async def list_behavior_events(self, user_id: str, limit: int = 50) -> list[BehaviorEvent]:
        rows = await self._fetchall(
            """
            SELECT user_id, event_type, event_data, lifescore_before, lifescore_after, session_id, created_at
            FROM behavior_events WHERE user_id = %s
            ORDER BY created_at DESC, id DESC
            LIMIT %s
            """,
            (user_id, limit)
        )
        return [BehaviorEvent(**row) for row in rows]

    async def close(self) -> None:
        await self.db.close_pool()

    # Bootstrap

    async def apply_schema(self) -> None:
        """Create tables, indexes and triggers (idempotent)"""
        sql = resources.files("lifescore.db").joinpath("schema.sql").read_text(encoding="utf-8")
        async with self.db.connection() as conn:
            await conn.execute(sql)
            await conn.commit()
        logger.info("Database schema applied")

    async def seed_catalog(
        self,
        missions: Iterable[Mission],
        achievements: Iterable[Achievement],
        rewards: Iterable[Reward],
    ) -> None:
        """Insert catalog rows that do not exist yet"""
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                for m in missions:
                    await cur.execute(
                        """
                        INSERT INTO missions
                            (id, title, description, category, difficulty, xp_reward, lifescore_impact,
                             coin_reward, recurrence, required_level, is_active)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO NOTHING
                        """,
                        (m.id, m.title, m.description, m.category.value, m.difficulty.value, m.xp_reward,
                         m.lifescore_impact, m.coin_reward, m.recurrence.value, m.required_level, m.is_active)
                    )
                for order, a in enumerate(achievements):
                    await cur.execute(
                        """
                        INSERT INTO achievements
                            (id, sort_order, name, description, icon, condition_type, condition_value,
                             xp_reward, coin_reward, lifescore_boost, rarity, is_active)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO NOTHING
                        """,
                        (a.id, order, a.name, a.description, a.icon, a.condition_type.value, a.condition_value,
                         a.xp_reward, a.coin_reward, a.lifescore_boost, a.rarity.value, a.is_active)
                    )
                for r in rewards:
                    await cur.execute(
                        """
                        INSERT INTO rewards (id, title, description, reward_type, coins_cost, is_active)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO NOTHING
                        """,
                        (r.id, r.title, r.description, r.reward_type.value, r.coins_cost, r.is_active)
                    )
            await conn.commit()
        logger.info("Catalog seeded")
