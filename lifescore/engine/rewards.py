"""
Reward Ledger

credit() and debit() are the only code paths that change a coin balance.
redeem() checks affordability and debits and records in one transaction.
"""

import logging
import secrets
from typing import Callable, Optional
from uuid import uuid4

from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.engine.stats import record_event, save_stats
from lifescore.exceptions import (
    ConflictError,
    DuplicateRecordError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from lifescore.models import BehaviorEventType, UserReward
from lifescore.resilience.metrics import record_redemption
from lifescore.utils.datetime_helpers import Clock, now_utc

logger = logging.getLogger(__name__)


def generate_redemption_token() -> str:
    """Opaque coupon code, e.g. LS-9F2C4A1B7E03"""
    return f"LS-{secrets.token_hex(6).upper()}"


def _check_amount(amount: int, user_id: str) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError(
            message="Coin amount must be a non-negative integer",
            field="amount",
            value=amount,
            user_id=user_id,
        )


class RewardLedger:
    """Coin balance and reward redemption"""

    def __init__(
        self,
        store: GamificationStore,
        clock: Clock = now_utc,
        token_factory: Callable[[], str] = generate_redemption_token,
    ):
        self.store = store
        self.clock = clock
        self.token_factory = token_factory

    async def credit(self, tx: StoreTransaction, user_id: str, amount: int, reason: str) -> int:
        """Add coins; also grows the lifetime coins-earned counter. Returns the new balance."""
        _check_amount(amount, user_id)
        stats = await tx.get_stats()
        if amount == 0:
            return stats.coins

        updated = await save_stats(
            tx,
            stats.model_copy(update={
                "coins": stats.coins + amount,
                "coins_earned_total": stats.coins_earned_total + amount,
            }),
            stats.version,
            operation="credit_coins",
        )
        logger.info(f"Credited {amount} coins to user {user_id} ({reason}). Balance: {updated.coins}")
        return updated.coins

    async def debit(self, tx: StoreTransaction, user_id: str, amount: int, reason: str) -> int:
        """Remove coins; never lets the balance go negative. Returns the new balance."""
        _check_amount(amount, user_id)
        stats = await tx.get_stats()
        if amount > stats.coins:
            raise InsufficientBalanceError(
                balance=stats.coins,
                required=amount,
                user_id=user_id,
                operation="debit_coins",
            )
        if amount == 0:
            return stats.coins

        updated = await save_stats(
            tx,
            stats.model_copy(update={"coins": stats.coins - amount}),
            stats.version,
            operation="debit_coins",
        )
        logger.info(f"Debited {amount} coins from user {user_id} ({reason}). Balance: {updated.coins}")
        return updated.coins

    async def redeem(
        self,
        tx: StoreTransaction,
        user_id: str,
        reward_id: str,
        session_id: Optional[str] = None,
    ) -> UserReward:
        """
        Exchange coins for a reward

        Raises:
            NotFoundError: reward missing or inactive
            ConflictError: award-once reward already held
            InsufficientBalanceError: cost exceeds balance (balance unchanged)
        """
        reward = await self.store.get_reward(reward_id)
        if reward is None or not reward.is_active:
            raise NotFoundError(
                message=f"Reward {reward_id} not found",
                record_type="Reward",
                record_id=reward_id,
                user_id=user_id,
            )

        if reward.award_once and await tx.count_user_rewards(reward_id) > 0:
            raise ConflictError(
                message=f"Reward {reward.title} has already been redeemed",
                current_state="redeemed",
                user_id=user_id,
                operation="redeem_reward",
            )

        stats = await tx.get_stats()
        await self.debit(tx, user_id, reward.coins_cost, reason=f"redeem:{reward_id}")

        redemption = UserReward(
            id=str(uuid4()),
            user_id=user_id,
            reward_id=reward.id,
            reward_type=reward.reward_type,
            coins_spent=reward.coins_cost,
            redemption_token=self.token_factory(),
            redeemed_at=self.clock(),
        )
        try:
            await tx.insert_user_reward(redemption, award_once=reward.award_once)
        except DuplicateRecordError as e:
            raise ConflictError(
                message=f"Reward {reward.title} has already been redeemed",
                current_state="redeemed",
                user_id=user_id,
                operation="redeem_reward",
                cause=e,
            )

        await record_event(
            tx,
            BehaviorEventType.REWARD_REDEEM,
            redemption.redeemed_at,
            event_data={
                "reward_id": reward.id,
                "reward_type": reward.reward_type.value,
                "coins_spent": reward.coins_cost,
            },
            lifescore_before=stats.lifescore,
            lifescore_after=stats.lifescore,
            session_id=session_id,
        )
        record_redemption(reward.reward_type.value)
        logger.info(f"User {user_id} redeemed {reward.id} for {reward.coins_cost} coins")
        return redemption

    async def list_user_rewards(self, user_id: str) -> list[UserReward]:
        return await self.store.list_user_rewards(user_id)
