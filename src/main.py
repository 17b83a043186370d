"""
Users Service - Application Entry Point
=======================================

Bootstrap
---------
- Config validation
- Application factory (database, services, request pipeline)
- uvicorn server lifecycle
- Logging shutdown

Run with ``python -m src.main``.
"""

import sys

import uvicorn

from src.api.app import create_app
from src.core.config.config import Config
from src.core.exceptions import ConfigurationError
from src.core.logging.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


def main() -> int:
    logger.info("========== USERS SERVICE INITIALIZATION START ==========")

    try:
        Config.validate()
        logger.info("Configuration validated", extra=Config.get_config_summary())
    except (ConfigurationError, ValueError) as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        return 1

    app = create_app()

    try:
        uvicorn.run(
            app,
            host=Config.SERVER_HOST,
            port=Config.SERVER_PORT,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Shutdown requested via KeyboardInterrupt")
    finally:
        logger.info("========== USERS SERVICE STOPPED ==========")
        shutdown_logging()

    return 0


if __name__ == "__main__":
    sys.exit(main())
