"""Proxy server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from src.api.service_registry import ServiceRegistry


async def run_api_server(services: ServiceRegistry) -> None:
    """Start uvicorn serving the proxy API.

    Designed to run as an asyncio task alongside the recent-tokens sync.
    Uses ``uvicorn.Server.serve()`` which is fully async.
    """
    from src.api.app import create_app

    app = create_app(services)
    config = uvicorn.Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"Proxy API starting on http://{settings.api_host}:{settings.api_port}")
    await server.serve()
