"""Scenario prediction models"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from lifescore.models.mission import MissionCategory, Difficulty


class DietQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class SeatbeltUsage(str, Enum):
    ALWAYS = "always"
    OFTEN = "often"
    RARELY = "rarely"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScenarioInputs(BaseModel):
    """Fully populated, validated inputs; scoring never sees optional fields"""
    model_config = {"frozen": True}

    walk_minutes: float = Field(..., ge=0)
    diet_quality: DietQuality
    commute_distance: float = Field(..., ge=0)
    driving_hours: float = Field(..., ge=0)
    seatbelt_usage: SeatbeltUsage


class SuggestedMission(BaseModel):
    """Mission suggestion derived from scenario thresholds"""
    id: str
    title: str
    category: MissionCategory
    difficulty: Difficulty
    xp_reward: int
    lifescore_impact: int
    ai_generated: bool = True
    reason: Optional[str] = None


class ScenarioPrediction(BaseModel):
    """Deterministic projection; identical inputs serialize identically"""
    inputs: ScenarioInputs
    lifescore_delta: int = Field(..., ge=1, le=20)
    xp_reward: int = Field(..., ge=10, le=100)
    risk_level: RiskLevel
    severity_score: int = Field(..., ge=1, le=10)
    narrative: str
    suggested_missions: list[SuggestedMission]
