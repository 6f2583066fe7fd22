"""Main entry point for the LifeScore API server"""
import logging
import uvicorn

from lifescore.api.server import create_api_application
from lifescore.config import API_HOST, API_PORT, LOG_LEVEL, validate_config

logger = logging.getLogger(__name__)

app = create_api_application()


def main() -> None:
    """Validate configuration and serve the API"""
    logger.info("Validating configuration...")
    validate_config()
    logger.info(f"Serving LifeScore API on {API_HOST}:{API_PORT}")
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
