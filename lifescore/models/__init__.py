"""Pydantic models for the LifeScore engine"""
from lifescore.models.user import RequestContext, UserStats, LevelProgress, StatsSnapshot
from lifescore.models.mission import (
    Mission, UserMission, MissionStatus, MissionCategory, Difficulty, Recurrence,
    MissionAvailability,
)
from lifescore.models.achievement import (
    Achievement, UserAchievement, ConditionType, AchievementRarity,
    AchievementCounters, AchievementProgress,
)
from lifescore.models.reward import Reward, RewardType, UserReward
from lifescore.models.events import (
    LifeScoreReason, LifeScoreHistoryEntry, BehaviorEvent, BehaviorEventType,
)
from lifescore.models.scenario import (
    ScenarioInputs, ScenarioPrediction, SuggestedMission, DietQuality, SeatbeltUsage, RiskLevel,
)
from lifescore.models.results import (
    LifeScoreChange, XPAward, StreakUpdate, RewardResult, RedemptionResult, ScenarioResult,
)

__all__ = [
    "RequestContext", "UserStats", "LevelProgress", "StatsSnapshot",
    "Mission", "UserMission", "MissionStatus", "MissionCategory", "Difficulty", "Recurrence",
    "MissionAvailability",
    "Achievement", "UserAchievement", "ConditionType", "AchievementRarity",
    "AchievementCounters", "AchievementProgress",
    "Reward", "RewardType", "UserReward",
    "LifeScoreReason", "LifeScoreHistoryEntry", "BehaviorEvent", "BehaviorEventType",
    "ScenarioInputs", "ScenarioPrediction", "SuggestedMission", "DietQuality", "SeatbeltUsage",
    "RiskLevel",
    "LifeScoreChange", "XPAward", "StreakUpdate", "RewardResult", "RedemptionResult",
    "ScenarioResult",
]
