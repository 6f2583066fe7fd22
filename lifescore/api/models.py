"""Pydantic models for API request/response validation"""
from typing import Any, Dict
from pydantic import BaseModel, Field
from datetime import datetime


class ProgressRequest(BaseModel):
    """Request to record progress on the active mission"""
    progress: int = Field(..., description="Progress percentage (0-99); completion goes through /complete")


class ScenarioRequest(BaseModel):
    """Request to simulate a lifestyle scenario"""
    inputs: Dict[str, Any] = Field(
        default_factory=dict,
        description="walk_minutes, diet_quality, commute_distance, driving_hours, seatbelt_usage"
    )
    apply: bool = Field(default=False, description="Apply the projected delta and XP to the user's stats")


class RecommendRequest(BaseModel):
    """Request for adaptive mission recommendations"""
    inputs: Dict[str, Any] = Field(default_factory=dict, description="Same shape as scenario inputs")


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    store: str = Field(..., description="Datastore backend")
    provider: str = Field(..., description="Text completion provider")
    timestamp: datetime = Field(..., description="Check timestamp")
