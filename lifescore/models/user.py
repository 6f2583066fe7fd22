"""User stats and request context models"""
from datetime import date
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field


class RequestContext(BaseModel):
    """Principal passed explicitly as the first argument to every engine call"""
    user_id: str = Field(..., min_length=1)
    session_id: Optional[str] = None
    request_id: str = Field(default_factory=lambda: str(uuid4()))

    @property
    def rate_limit_key(self) -> str:
        """Sessions are limited independently; fall back to the user"""
        return f"session:{self.session_id}" if self.session_id else f"user:{self.user_id}"


class UserStats(BaseModel):
    """Engine-owned numeric stats; mutated only through ledger operations"""
    user_id: str
    lifescore: int = Field(default=0, ge=0, le=100)
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    coins: int = Field(default=0, ge=0)
    coins_earned_total: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_active_date: Optional[date] = None
    version: int = Field(default=0, ge=0)


class LevelProgress(BaseModel):
    """XP progress within the current level"""
    level: int
    current: int
    required: int
    percentage: int


class StatsSnapshot(BaseModel):
    """Read model returned by get_stats"""
    user_id: str
    lifescore: int
    lifescore_status: str  # excellent, high, medium, low
    xp: int
    level: int
    level_progress: LevelProgress
    coins: int
    streak: int
    longest_streak: int
