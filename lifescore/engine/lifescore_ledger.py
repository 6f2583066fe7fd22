"""
LifeScore Ledger

Owns the bounded 0-100 score. Every call writes exactly one history entry
holding the clamped (effectively applied) change, so old + change == new
holds for every stored row.
"""

import logging
from typing import Optional, Union

from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.engine.stats import record_event, save_stats
from lifescore.exceptions import ValidationError
from lifescore.models import (
    BehaviorEventType,
    LifeScoreChange,
    LifeScoreHistoryEntry,
    LifeScoreReason,
)
from lifescore.utils.datetime_helpers import Clock, now_utc

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100
MAX_DELTA = 50
MILESTONE_STEP = 25


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))


def coerce_reason(reason: Union[LifeScoreReason, str], user_id: Optional[str] = None) -> LifeScoreReason:
    """Map a reason onto the fixed set of causes; anything else is rejected"""
    if isinstance(reason, LifeScoreReason):
        return reason
    try:
        return LifeScoreReason(reason)
    except ValueError:
        raise ValidationError(
            message=f"Unknown LifeScore change reason: {reason!r}",
            field="reason",
            value=reason,
            user_id=user_id,
        )


class LifeScoreLedger:
    """Applies and records LifeScore changes"""

    def __init__(self, store: GamificationStore, clock: Clock = now_utc):
        self.store = store
        self.clock = clock

    async def apply_delta(
        self,
        tx: StoreTransaction,
        user_id: str,
        delta: int,
        reason: Union[LifeScoreReason, str],
        mission_id: Optional[str] = None,
        achievement_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> LifeScoreChange:
        """
        Apply a change, saturating at 0 and 100.

        Raises:
            ValidationError: unknown reason, non-integer delta or |delta| > 50
        """
        reason = coerce_reason(reason, user_id)
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError(
                message="LifeScore delta must be an integer",
                field="delta",
                value=delta,
                user_id=user_id,
            )
        if abs(delta) > MAX_DELTA:
            raise ValidationError(
                message=f"LifeScore delta must be within ±{MAX_DELTA}",
                field="delta",
                value=delta,
                user_id=user_id,
            )

        now = self.clock()
        stats = await tx.get_stats()
        old_score = stats.lifescore
        new_score = clamp_score(old_score + delta)
        applied = new_score - old_score

        if applied:
            await save_stats(
                tx,
                stats.model_copy(update={"lifescore": new_score}),
                stats.version,
                operation="apply_lifescore_delta",
            )

        await tx.append_lifescore_history(
            LifeScoreHistoryEntry(
                user_id=user_id,
                old_score=old_score,
                new_score=new_score,
                change_amount=applied,
                reason=reason,
                mission_id=mission_id,
                achievement_id=achievement_id,
                created_at=now,
            )
        )

        if new_score > old_score and new_score // MILESTONE_STEP > old_score // MILESTONE_STEP:
            milestone = (new_score // MILESTONE_STEP) * MILESTONE_STEP
            await record_event(
                tx,
                BehaviorEventType.LIFESCORE_MILESTONE,
                now,
                event_data={"milestone": milestone, "reason": reason.value},
                lifescore_before=old_score,
                lifescore_after=new_score,
                session_id=session_id,
            )
            logger.info(f"User {user_id} reached LifeScore milestone {milestone}")

        if applied != delta:
            logger.info(
                f"LifeScore for user {user_id} clamped: requested {delta:+d}, applied {applied:+d} "
                f"({old_score} → {new_score}, {reason.value})"
            )
        else:
            logger.info(f"LifeScore for user {user_id}: {old_score} → {new_score} ({reason.value})")

        return LifeScoreChange(
            old_score=old_score,
            new_score=new_score,
            requested_delta=delta,
            applied_delta=applied,
        )

    async def get_history(self, user_id: str, limit: int = 50) -> list[LifeScoreHistoryEntry]:
        """Newest first"""
        if limit < 1:
            raise ValidationError(message="limit must be positive", field="limit", value=limit, user_id=user_id)
        return await self.store.list_lifescore_history(user_id, limit=limit)
