"""Reward catalog and redemption models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class RewardType(str, Enum):
    """Reward categories"""
    BADGE = "badge"
    COIN_BOOST = "coin_boost"
    PARTNER_OFFER = "partner_offer"
    STREAK_BONUS = "streak_bonus"
    ACHIEVEMENT = "achievement"


class Reward(BaseModel):
    """Catalog item redeemable with coins"""
    id: str
    title: str
    description: Optional[str] = None
    reward_type: RewardType = RewardType.PARTNER_OFFER
    coins_cost: int = Field(default=0, ge=0)
    is_active: bool = True

    @property
    def award_once(self) -> bool:
        return self.reward_type == RewardType.BADGE


class UserReward(BaseModel):
    """A redemption"""
    id: str
    user_id: str
    reward_id: str
    reward_type: RewardType
    coins_spent: int = Field(default=0, ge=0)
    redemption_token: str = Field(..., min_length=1)
    status: str = "redeemed"
    redeemed_at: datetime
