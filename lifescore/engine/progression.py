"""
XP and Leveling

Level is derived from XP on every change; XP is the single source of truth.

Leveling Curve:
- 100 XP per level, starting at level 1 (0-99 XP = level 1, 100-199 = level 2, ...)
"""

import logging
from typing import Optional

from lifescore.db.store import StoreTransaction
from lifescore.engine.stats import save_stats
from lifescore.exceptions import ValidationError
from lifescore.models import LevelProgress, XPAward

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100


def level_from_xp(xp: int) -> int:
    """Level for a total XP amount; pure and monotonic"""
    return max(0, xp) // XP_PER_LEVEL + 1


def level_progress(xp: int) -> LevelProgress:
    """
    XP progress within the current level

    Returns:
        LevelProgress(level, current, required, percentage)
    """
    xp = max(0, xp)
    current = xp % XP_PER_LEVEL
    return LevelProgress(
        level=level_from_xp(xp),
        current=current,
        required=XP_PER_LEVEL,
        percentage=current * 100 // XP_PER_LEVEL,
    )


def lifescore_status(score: int) -> str:
    """Bucket a LifeScore into excellent / high / medium / low"""
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


async def award_xp(
    tx: StoreTransaction,
    user_id: str,
    amount: int,
    source: str,
    source_id: Optional[str] = None,
) -> XPAward:
    """
    Award XP and recompute the level

    Args:
        tx: Open transaction for user_id
        user_id: User receiving the XP
        amount: Non-negative XP amount
        source: Activity type (mission, achievement, scenario)
        source_id: ID of the source activity (optional)

    Returns:
        XPAward with old/new totals and levels
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError(
            message="XP amount must be a non-negative integer",
            field="amount",
            value=amount,
            user_id=user_id,
        )

    stats = await tx.get_stats()
    old_xp, old_level = stats.xp, stats.level
    new_xp = old_xp + amount
    new_level = level_from_xp(new_xp)

    if amount:
        await save_stats(
            tx,
            stats.model_copy(update={"xp": new_xp, "level": new_level}),
            stats.version,
            operation="award_xp",
        )

    leveled_up = new_level > old_level
    logger.info(
        f"Awarded {amount} XP to user {user_id} for {source}"
        f"{f' ({source_id})' if source_id else ''}. Total: {new_xp} XP, Level: {new_level}"
    )
    if leveled_up:
        logger.info(f"User {user_id} leveled up from {old_level} to {new_level}!")

    return XPAward(
        xp_awarded=amount,
        old_xp=old_xp,
        new_xp=new_xp,
        old_level=old_level,
        new_level=new_level,
        leveled_up=leveled_up,
    )
