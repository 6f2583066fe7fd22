"""Shared write path for UserStats and behavior events inside a transaction"""
import logging
from datetime import datetime
from typing import Any, Optional

from lifescore.db.store import StoreTransaction
from lifescore.exceptions import ConflictError
from lifescore.models import BehaviorEvent, BehaviorEventType, UserStats

logger = logging.getLogger(__name__)


async def save_stats(tx: StoreTransaction, stats: UserStats, expected_version: int, operation: str) -> UserStats:
    """
    Compare-and-set write of the user's stats.

    A version mismatch means another writer got there first; it is reported
    as ConflictError rather than retried.
    """
    if not await tx.update_stats(stats, expected_version):
        raise ConflictError(
            message="User stats were modified concurrently",
            current_state="stale_version",
            user_id=stats.user_id,
            operation=operation,
            context={"expected_version": expected_version},
        )
    return stats.model_copy(update={"version": expected_version + 1})


async def record_event(
    tx: StoreTransaction,
    event_type: BehaviorEventType,
    created_at: datetime,
    event_data: Optional[dict[str, Any]] = None,
    lifescore_before: Optional[int] = None,
    lifescore_after: Optional[int] = None,
    session_id: Optional[str] = None,
) -> BehaviorEvent:
    event = BehaviorEvent(
        user_id=tx.user_id,
        event_type=event_type,
        event_data=event_data or {},
        lifescore_before=lifescore_before,
        lifescore_after=lifescore_after,
        session_id=session_id,
        created_at=created_at,
    )
    await tx.append_behavior_event(event)
    logger.debug(f"Recorded {event_type.value} event for user {tx.user_id}")
    return event
