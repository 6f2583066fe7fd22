"""LifeScore history and behavior event models"""
from enum import Enum
from typing import Optional, Any
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class LifeScoreReason(str, Enum):
    """Fixed set of causes a LifeScore change may be recorded under"""
    MISSION_COMPLETE = "mission_complete"
    SCENARIO_PENALTY = "scenario_penalty"
    STREAK_BONUS = "streak_bonus"
    ACHIEVEMENT_REWARD = "achievement_reward"
    MANUAL_UPDATE = "manual_update"
    DAILY_BONUS = "daily_bonus"
    WEEKLY_BONUS = "weekly_bonus"
    ONBOARDING_COMPLETE = "onboarding_complete"


class BehaviorEventType(str, Enum):
    """Append-only event stream consumed by the evaluator and analytics"""
    MISSION_START = "mission_start"
    MISSION_COMPLETE = "mission_complete"
    MISSION_FAIL = "mission_fail"
    REWARD_REDEEM = "reward_redeem"
    SCENARIO_SIMULATE = "scenario_simulate"
    ACHIEVEMENT_EARN = "achievement_earn"
    STREAK_MILESTONE = "streak_milestone"
    LIFESCORE_MILESTONE = "lifescore_milestone"


class LifeScoreHistoryEntry(BaseModel):
    """Immutable record of one LifeScore change"""
    model_config = {"frozen": True}

    user_id: str
    old_score: int = Field(..., ge=0, le=100)
    new_score: int = Field(..., ge=0, le=100)
    change_amount: int = Field(..., ge=-50, le=50)
    reason: LifeScoreReason
    mission_id: Optional[str] = None
    achievement_id: Optional[str] = None
    created_at: datetime

    @model_validator(mode="after")
    def _check_balanced(self):
        if self.old_score + self.change_amount != self.new_score:
            raise ValueError("old_score + change_amount must equal new_score")
        return self


class BehaviorEvent(BaseModel):
    """Append-only behavior log entry"""
    model_config = {"frozen": True}

    user_id: str
    event_type: BehaviorEventType
    event_data: dict[str, Any] = Field(default_factory=dict)
    lifescore_before: Optional[int] = Field(default=None, ge=0, le=100)
    lifescore_after: Optional[int] = Field(default=None, ge=0, le=100)
    session_id: Optional[str] = None
    created_at: datetime
