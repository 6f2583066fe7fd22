"""API routes for the LifeScore engine"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, Query, Request, status

from lifescore.api.middleware import limiter
from lifescore.api.models import HealthCheckResponse, ProgressRequest, RecommendRequest, ScenarioRequest
from lifescore.engine.orchestrator import GamificationOrchestrator
from lifescore.models import (
    Achievement,
    AchievementProgress,
    LifeScoreHistoryEntry,
    MissionAvailability,
    MissionStatus,
    RedemptionResult,
    RequestContext,
    Reward,
    RewardResult,
    ScenarioResult,
    StatsSnapshot,
    SuggestedMission,
    UserMission,
    UserReward,
)

logger = logging.getLogger(__name__)

router = APIRouter()

USER_PREFIX = "/api/v1/users/{user_id}"


def get_orchestrator(request: Request) -> GamificationOrchestrator:
    """Orchestrator built at startup and stored on app.state"""
    return request.app.state.engine.orchestrator


def get_context(
    user_id: str,
    x_session_id: Optional[str] = Header(default=None),
    x_request_id: Optional[str] = Header(default=None),
) -> RequestContext:
    """Caller identity passed to every engine call"""
    if x_request_id:
        return RequestContext(user_id=user_id, session_id=x_session_id, request_id=x_request_id)
    return RequestContext(user_id=user_id, session_id=x_session_id)


# ==========================================
# Users and stats
# ==========================================

@router.post(USER_PREFIX, response_model=StatsSnapshot, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_user(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Register a user with default stats (Rate limit: 20/minute)"""
    stats = await engine.create_user(ctx)
    logger.info(f"Created user via API: {ctx.user_id}")
    return stats


@router.get(USER_PREFIX + "/stats", response_model=StatsSnapshot)
@limiter.limit("60/minute")
async def get_stats(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """LifeScore, XP, level, coins and streak"""
    return await engine.get_stats(ctx)


# ==========================================
# Missions
# ==========================================

@router.get(USER_PREFIX + "/missions", response_model=List[MissionAvailability])
@limiter.limit("60/minute")
async def list_missions(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Mission catalog annotated with the user's status for each entry"""
    return await engine.list_missions(ctx)


@router.get(USER_PREFIX + "/missions/history", response_model=List[UserMission])
@limiter.limit("60/minute")
async def list_user_missions(
    request: Request,
    mission_status: Optional[MissionStatus] = Query(default=None, alias="status"),
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """The user's mission instances, newest first"""
    return await engine.list_user_missions(ctx, status=mission_status)


@router.post(USER_PREFIX + "/missions/{mission_id}/start", response_model=UserMission)
@limiter.limit("30/minute")
async def start_mission(
    request: Request,
    mission_id: str,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Start a mission; only one mission can be active at a time"""
    return await engine.start_mission(ctx, mission_id)


@router.post(USER_PREFIX + "/missions/{mission_id}/complete", response_model=RewardResult)
@limiter.limit("30/minute")
async def complete_mission(
    request: Request,
    mission_id: str,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Complete the active mission and collect its rewards"""
    return await engine.complete_mission(ctx, mission_id)


@router.post(USER_PREFIX + "/missions/{mission_id}/fail", response_model=UserMission)
@limiter.limit("30/minute")
async def fail_mission(
    request: Request,
    mission_id: str,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Abandon the active mission"""
    return await engine.fail_mission(ctx, mission_id)


@router.put(USER_PREFIX + "/missions/{mission_id}/progress", response_model=UserMission)
@limiter.limit("60/minute")
async def update_mission_progress(
    request: Request,
    mission_id: str,
    body: ProgressRequest,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Record progress on the active mission"""
    return await engine.update_mission_progress(ctx, mission_id, body.progress)


# ==========================================
# Rewards
# ==========================================

@router.get(USER_PREFIX + "/rewards", response_model=List[Reward])
@limiter.limit("60/minute")
async def list_rewards(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Active reward catalog"""
    return await engine.list_rewards(ctx)


@router.get(USER_PREFIX + "/rewards/redeemed", response_model=List[UserReward])
@limiter.limit("60/minute")
async def list_user_rewards(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """The user's redemptions, newest first"""
    return await engine.list_user_rewards(ctx)


@router.post(USER_PREFIX + "/rewards/{reward_id}/redeem", response_model=RedemptionResult)
@limiter.limit("20/minute")
async def redeem_reward(
    request: Request,
    reward_id: str,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Spend coins on a reward (Rate limit: 20/minute)"""
    return await engine.redeem_reward(ctx, reward_id)


# ==========================================
# Scenarios
# ==========================================

@router.post(USER_PREFIX + "/scenarios/simulate", response_model=ScenarioResult)
@limiter.limit("30/minute")
async def simulate_scenario(
    request: Request,
    body: ScenarioRequest,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """
    What-if projection of a lifestyle change

    Scoring is deterministic; the narrative may be enriched by the
    configured text provider. The engine also enforces a per-session limit.
    """
    return await engine.simulate_scenario(ctx, body.inputs, apply=body.apply)


@router.post(USER_PREFIX + "/scenarios/recommend", response_model=List[SuggestedMission])
@limiter.limit("30/minute")
async def recommend_missions(
    request: Request,
    body: RecommendRequest,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Adaptive mission suggestions for the given inputs"""
    return await engine.recommend_missions(ctx, body.inputs)


# ==========================================
# Achievements and history
# ==========================================

@router.post(USER_PREFIX + "/achievements/evaluate", response_model=List[Achievement])
@limiter.limit("30/minute")
async def evaluate_achievements(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Grant any achievements whose conditions are now met"""
    return await engine.evaluate_achievements(ctx)


@router.get(USER_PREFIX + "/achievements", response_model=List[AchievementProgress])
@limiter.limit("60/minute")
async def list_achievements(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """Every achievement with the user's progress toward it"""
    return await engine.list_achievements(ctx)


@router.get(USER_PREFIX + "/lifescore/history", response_model=List[LifeScoreHistoryEntry])
@limiter.limit("60/minute")
async def get_lifescore_history(
    request: Request,
    limit: int = Query(default=50),
    ctx: RequestContext = Depends(get_context),
    engine: GamificationOrchestrator = Depends(get_orchestrator),
):
    """LifeScore changes, newest first"""
    return await engine.get_lifescore_history(ctx, limit=limit)


@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    container = request.app.state.engine
    return HealthCheckResponse(
        status="healthy",
        store=type(container.store).__name__,
        provider=container.provider.name,
        timestamp=datetime.now(timezone.utc)
    )
