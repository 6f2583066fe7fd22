"""Structured outcomes returned by the orchestrator"""
from typing import Optional
from pydantic import BaseModel, Field

from lifescore.models.achievement import Achievement
from lifescore.models.mission import UserMission
from lifescore.models.reward import UserReward
from lifescore.models.scenario import ScenarioPrediction
from lifescore.models.user import StatsSnapshot


class LifeScoreChange(BaseModel):
    """Outcome of one LifeScore ledger call"""
    old_score: int
    new_score: int
    requested_delta: int
    applied_delta: int


class XPAward(BaseModel):
    """Outcome of one XP award"""
    xp_awarded: int
    old_xp: int
    new_xp: int
    old_level: int
    new_level: int
    leveled_up: bool


class StreakUpdate(BaseModel):
    """Outcome of registering a day of activity"""
    current_streak: int
    longest_streak: int
    old_streak: int
    milestone_reached: Optional[int] = None


class RewardResult(BaseModel):
    """Reward breakdown for a completed mission"""
    user_mission: UserMission
    xp_earned: int
    coins_earned: int
    lifescore_delta: int
    level_up: bool = False
    new_level: int
    current_streak: int
    achievements_unlocked: list[Achievement] = Field(default_factory=list)
    stats: StatsSnapshot


class RedemptionResult(BaseModel):
    """A successful redemption and the balance after it"""
    redemption: UserReward
    coins_spent: int
    balance: int
    achievements_unlocked: list[Achievement] = Field(default_factory=list)


class ScenarioResult(BaseModel):
    """Prediction plus what happened when (and if) it was applied"""
    prediction: ScenarioPrediction
    ai_narrative: Optional[str] = None
    narrative_source: str = "deterministic"
    applied: bool = False
    lifescore_change: Optional[LifeScoreChange] = None
    xp_award: Optional[XPAward] = None
    achievements_unlocked: list[Achievement] = Field(default_factory=list)
    stats: Optional[StatsSnapshot] = None
