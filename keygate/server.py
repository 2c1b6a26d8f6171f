#!/usr/bin/env python3
"""
Long-running server for the key system.

Usage:
    keygate
    python -m keygate.server

Environment variables:
    MONETIZZY_TOKEN - shared token for /gerar and bearer for Monetizzy
    KEYS_FILE - JSON file holding the keys (default keys.json)
    PORT - Port to listen on (default 3000)
    ALLOWED_ORIGINS - Comma-separated CORS allow-list
    LOG_LEVEL - Logging level

SIGINT and SIGTERM both trigger uvicorn's graceful shutdown, which runs
the app lifespan and flushes the keys to disk before exit.
"""

import sys

import uvicorn

from .app_factory import create_app
from .config import load_settings
from .logging_config import setup_logging


def main():
    """Main entry point."""
    settings = load_settings()

    logger = setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        json_format=settings.log_json,
    )
    logger.info("Key System Monetizzy")
    logger.info(f"Keys file: {settings.keys_file}, expiry {settings.key_expiry_hours:g}h")
    if not settings.monetizzy_token:
        logger.warning("MONETIZZY_TOKEN is not set; /gerar will reject every request")

    app = create_app(settings)

    uvicorn_config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
    server = uvicorn.Server(uvicorn_config)

    try:
        logger.info(f"Starting server on {settings.host}:{settings.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
