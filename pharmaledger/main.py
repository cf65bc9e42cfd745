"""
PharmaLedger - Main entry point.

Loads configuration from the environment, configures logging and serves
the HTTP API with uvicorn. The store is opened by the application lifespan
and closed on shutdown.

Usage:
    python -m pharmaledger.main

Configuration is entirely via environment variables.
See config.py and api/config.py for all available settings.
"""

from __future__ import annotations

import logging

import json_log_formatter
import uvicorn

from .api import Settings, create_app
from .config import ServerConfig

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main() -> None:
    """Run the PharmaLedger server."""
    config = ServerConfig.from_env()
    settings = Settings()

    setup_logging(config)
    config.log_config()
    logger.info(f"Starting PharmaLedger on {settings.bind_address}")

    app = create_app(config, settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
