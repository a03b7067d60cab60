"""FastAPI application factory for the caching proxy."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.cors import CORSMiddleware

from config.settings import settings
from src.api.middleware import SecurityHeadersMiddleware
from src.api.service_registry import ServiceRegistry
from src.parsers.odin.exceptions import UpstreamFetchError

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)


async def _upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(services: ServiceRegistry) -> FastAPI:
    """Build and configure the FastAPI application around ``services``."""
    app = FastAPI(
        title="Creator Radar Proxy",
        version="0.1.0",
        docs_url="/api/docs" if settings.api_debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.api_debug else None,
    )
    app.state.services = services

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Upstream failures with nothing cached -> 500 {"error": ...}
    app.add_exception_handler(UpstreamFetchError, _upstream_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Import and include routers
    from src.api.routers.creators import router as creators_router
    from src.api.routers.health import router as health_router
    from src.api.routers.odin_proxy import router as odin_proxy_router

    app.include_router(health_router)
    app.include_router(odin_proxy_router)
    app.include_router(creators_router)

    return app
