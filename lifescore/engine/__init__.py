"""Mission / reward / LifeScore engine"""
from lifescore.engine.achievements import AchievementEvaluator, PREDICATES
from lifescore.engine.lifescore_ledger import LifeScoreLedger
from lifescore.engine.missions import MissionLifecycleManager, coin_reward_for, instance_key
from lifescore.engine.orchestrator import GamificationOrchestrator, snapshot
from lifescore.engine.progression import award_xp, level_from_xp, level_progress, lifescore_status
from lifescore.engine.rewards import RewardLedger, generate_redemption_token
from lifescore.engine.scenario import ScenarioNarrator, normalize_inputs, predict, recommend_missions

__all__ = [
    "AchievementEvaluator",
    "PREDICATES",
    "LifeScoreLedger",
    "MissionLifecycleManager",
    "coin_reward_for",
    "instance_key",
    "GamificationOrchestrator",
    "snapshot",
    "award_xp",
    "level_from_xp",
    "level_progress",
    "lifescore_status",
    "RewardLedger",
    "generate_redemption_token",
    "ScenarioNarrator",
    "normalize_inputs",
    "predict",
    "recommend_missions",
]
