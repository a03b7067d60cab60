"""Health check. Liveness probe, always 200."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_services
from src.api.service_registry import ServiceRegistry

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    cache_ok: bool
    cache: dict[str, int]
    sync_cycle: int | None


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServiceRegistry = Depends(get_services)) -> HealthResponse:
    """Report cache store connectivity and proxy counters."""
    cache_ok = await services.proxy.store.ping()
    return HealthResponse(
        status="ok",
        version="0.1.0",
        uptime_sec=services.uptime_sec,
        cache_ok=cache_ok,
        cache=services.proxy.stats(),
        sync_cycle=services.sync.snapshot.cycle if services.sync else None,
    )
