"""Prometheus scrape endpoint for the LifeScore engine"""
from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    """Engine counters (missions, rewards, scenarios) and breaker/retry metrics in text format"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
