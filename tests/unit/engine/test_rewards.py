"""Unit tests for coin balance and redemption"""
import re
import pytest

from lifescore.engine.rewards import RewardLedger, generate_redemption_token
from lifescore.exceptions import ConflictError, InsufficientBalanceError, NotFoundError, ValidationError
from lifescore.models import BehaviorEventType, RewardType


@pytest.fixture
def reward_ledger(store, clock):
    return RewardLedger(store, clock=clock, token_factory=lambda: "LS-TESTTOKEN01")


def test_generate_redemption_token_format():
    token = generate_redemption_token()
    assert re.fullmatch(r"LS-[0-9A-F]{12}", token)
    assert token != generate_redemption_token()


# ============================================================================
# Credit / Debit
# ============================================================================

@pytest.mark.asyncio
async def test_credit_grows_balance_and_lifetime_total(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=5, coins_earned_total=5)

    async with store.transaction(test_user_id) as tx:
        balance = await reward_ledger.credit(tx, test_user_id, 20, reason="mission:daily-walk")

    assert balance == 25
    stats = await store.read_stats(test_user_id)
    assert stats.coins == 25
    assert stats.coins_earned_total == 25


@pytest.mark.asyncio
async def test_debit_does_not_touch_lifetime_total(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=50, coins_earned_total=80)

    async with store.transaction(test_user_id) as tx:
        balance = await reward_ledger.debit(tx, test_user_id, 30, reason="test")

    assert balance == 20
    assert (await store.read_stats(test_user_id)).coins_earned_total == 80


@pytest.mark.asyncio
async def test_debit_more_than_balance_fails(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=10)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.debit(tx, test_user_id, 11, reason="test")

    assert exc_info.value.balance == 10
    assert exc_info.value.required == 11
    assert (await store.read_stats(test_user_id)).coins == 10


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [-5, 1.5, False])
async def test_credit_rejects_invalid_amounts(reward_ledger, store, seed_stats, test_user_id, amount):
    seed_stats(store)
    with pytest.raises(ValidationError):
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.credit(tx, test_user_id, amount, reason="test")


# ============================================================================
# Redemption
# ============================================================================

@pytest.mark.asyncio
async def test_redeem_exact_balance_leaves_zero(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=100)

    async with store.transaction(test_user_id) as tx:
        redemption = await reward_ledger.redeem(tx, test_user_id, "voucher-100", session_id="s-1")

    assert redemption.coins_spent == 100
    assert redemption.redemption_token == "LS-TESTTOKEN01"
    assert redemption.reward_type == RewardType.PARTNER_OFFER
    assert (await store.read_stats(test_user_id)).coins == 0

    events = await store.list_behavior_events(test_user_id)
    assert events[0].event_type == BehaviorEventType.REWARD_REDEEM
    assert events[0].event_data["reward_id"] == "voucher-100"
    assert events[0].session_id == "s-1"


@pytest.mark.asyncio
async def test_redeem_one_coin_short_fails_and_keeps_balance(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=99)

    with pytest.raises(InsufficientBalanceError):
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.redeem(tx, test_user_id, "voucher-100")

    assert (await store.read_stats(test_user_id)).coins == 99
    assert await reward_ledger.list_user_rewards(test_user_id) == []


@pytest.mark.asyncio
async def test_partner_offer_can_be_redeemed_repeatedly(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store, coins=200)

    for _ in range(2):
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.redeem(tx, test_user_id, "voucher-100")

    assert len(await reward_ledger.list_user_rewards(test_user_id)) == 2
    assert (await store.read_stats(test_user_id)).coins == 0


@pytest.mark.asyncio
async def test_badge_is_award_once(reward_ledger, store, seed_stats, test_user_id):
    seed_stats(store)

    async with store.transaction(test_user_id) as tx:
        await reward_ledger.redeem(tx, test_user_id, "bronze-badge")

    with pytest.raises(ConflictError) as exc_info:
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.redeem(tx, test_user_id, "bronze-badge")

    assert exc_info.value.current_state == "redeemed"
    assert len(await reward_ledger.list_user_rewards(test_user_id)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("reward_id", ["no-such-reward", "retired-reward"])
async def test_redeem_unknown_or_inactive_reward(reward_ledger, store, seed_stats, test_user_id, reward_id):
    seed_stats(store, coins=500)

    with pytest.raises(NotFoundError):
        async with store.transaction(test_user_id) as tx:
            await reward_ledger.redeem(tx, test_user_id, reward_id)

    assert (await store.read_stats(test_user_id)).coins == 500
