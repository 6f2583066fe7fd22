"""API middleware for rate limiting and CORS"""
import logging
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded as SlowAPIRateLimitExceeded
from fastapi.middleware.cors import CORSMiddleware

from lifescore.config import CORS_ORIGINS

logger = logging.getLogger(__name__)

# Per-IP limiter for the HTTP surface; per-session scenario limits live in the engine
limiter = Limiter(key_func=get_remote_address)


def setup_cors(app):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(f"CORS configured for origins: {CORS_ORIGINS}")


def setup_rate_limiting(app):
    """Configure rate limiting"""
    app.state.limiter = limiter
    app.add_exception_handler(SlowAPIRateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info("Rate limiting configured")
