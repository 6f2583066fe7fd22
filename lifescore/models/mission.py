"""Mission catalog and per-user mission models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class MissionCategory(str, Enum):
    """Mission categories"""
    SAFE_DRIVING = "safe_driving"
    HEALTH = "health"
    FINANCIAL_GUARDIAN = "financial_guardian"
    FAMILY_PROTECTION = "family_protection"
    LIFESTYLE = "lifestyle"


class Difficulty(str, Enum):
    """Mission difficulty"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class Recurrence(str, Enum):
    """How often a mission can be repeated"""
    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"


class MissionStatus(str, Enum):
    """UserMission lifecycle states"""
    AVAILABLE = "available"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    LOCKED = "locked"


class Mission(BaseModel):
    """Immutable catalog entry"""
    id: str
    title: str
    description: Optional[str] = None
    category: MissionCategory = MissionCategory.HEALTH
    difficulty: Difficulty = Difficulty.EASY
    xp_reward: int = Field(..., gt=0)
    lifescore_impact: int = Field(default=0, ge=-50, le=50)
    coin_reward: Optional[int] = Field(default=None, ge=0)
    recurrence: Recurrence = Recurrence.ONE_TIME
    required_level: int = Field(default=1, ge=1)
    is_active: bool = True


class UserMission(BaseModel):
    """A user's instance of a mission"""
    id: str
    user_id: str
    mission_id: str
    instance_key: str
    status: MissionStatus = MissionStatus.AVAILABLE
    progress: int = Field(default=0, ge=0, le=100)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    xp_earned: int = Field(default=0, ge=0)
    coins_earned: int = Field(default=0, ge=0)
    lifescore_change: int = 0


class MissionAvailability(BaseModel):
    """Catalog entry annotated with the user's current state for it"""
    mission: Mission
    status: MissionStatus
    user_mission: Optional[UserMission] = None
