"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ConditionType(str, Enum):
    """Aggregated counter an achievement is checked against"""
    LIFESCORE_MILESTONE = "lifescore_milestone"
    STREAK_COUNT = "streak_count"
    MISSIONS_COMPLETED = "missions_completed"
    XP_MILESTONE = "xp_milestone"
    COINS_EARNED = "coins_earned"
    DAYS_ACTIVE = "days_active"
    SCENARIOS_COMPLETED = "scenarios_completed"
    REWARDS_REDEEMED = "rewards_redeemed"


class AchievementRarity(str, Enum):
    """Achievement rarity"""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Achievement(BaseModel):
    """Achievement definition"""
    id: str
    name: str
    description: str = ""
    icon: str = "🏆"
    condition_type: ConditionType
    condition_value: int = Field(..., gt=0)
    xp_reward: int = Field(default=0, ge=0)
    coin_reward: int = Field(default=0, ge=0)
    lifescore_boost: int = Field(default=0, ge=0, le=50)
    rarity: AchievementRarity = AchievementRarity.COMMON
    is_active: bool = True


class UserAchievement(BaseModel):
    """User's unlocked achievement"""
    user_id: str
    achievement_id: str
    earned_at: datetime
    metadata: Optional[dict] = None


class AchievementCounters(BaseModel):
    """Aggregated user state the evaluator checks conditions against"""
    lifescore: int = 0
    current_streak: int = 0
    missions_completed: int = 0
    xp: int = 0
    coins_earned: int = 0
    days_active: int = 0
    scenarios_completed: int = 0
    rewards_redeemed: int = 0


class AchievementProgress(BaseModel):
    """Progress toward an achievement"""
    achievement: Achievement
    unlocked: bool
    earned_at: Optional[datetime] = None
    current: int
    required: int
    percentage: int
