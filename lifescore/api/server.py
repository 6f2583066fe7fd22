"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lifescore.api.routes import router
from lifescore.api.metrics_routes import router as metrics_router
from lifescore.api.middleware import setup_cors, setup_rate_limiting
from lifescore.config import LOG_LEVEL, validate_config
from lifescore.container import EngineContainer, build_engine
from lifescore.exceptions import LifeScoreError, RateLimitExceeded

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], Awaitable[EngineContainer]]


def create_api_application(engine_factory: Optional[EngineFactory] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        engine_factory: Coroutine returning the engine to serve; defaults to
            build_engine() driven by environment configuration
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for FastAPI application"""
        # Startup
        logger.info("Starting API server...")
        if engine_factory is None:
            validate_config()
            app.state.engine = await build_engine()
        else:
            app.state.engine = await engine_factory()
        logger.info("Engine ready")

        yield

        # Shutdown
        logger.info("Shutting down API server...")
        await app.state.engine.close()
        logger.info("Engine closed")

    app = FastAPI(
        title="LifeScore API",
        description="Missions, rewards, achievements and scenario simulation",
        version="1.0.0",
        lifespan=lifespan
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(LifeScoreError)
    async def lifescore_exception_handler(request: Request, exc: LifeScoreError):
        headers = None
        if isinstance(exc, RateLimitExceeded):
            headers = {"Retry-After": str(max(1, round(exc.retry_after)))}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
