"""Health check endpoint with backend connectivity probes.

Probes are short and never fail the response: the endpoint always returns
200 so load balancers keep routing, and each dependency reports
"connected", "disconnected" or "not_configured".
"""

from __future__ import annotations

import asyncio

import httpx
import structlog
from fastapi import APIRouter

from realizeit.config import settings

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds per probe


async def _check_postgres() -> str:
    """Run SELECT 1 against DATABASE_URL."""
    import asyncpg

    url = settings.database_url.replace("postgresql+asyncpg://", "postgresql://")
    try:
        conn = await asyncio.wait_for(asyncpg.connect(url), timeout=_CHECK_TIMEOUT)
        try:
            await conn.fetchval("SELECT 1")
        finally:
            await conn.close()
        return "connected"
    except Exception as exc:
        logger.debug("health_postgres_failed", error=str(exc))
        return "disconnected"


async def _check_supabase() -> str:
    """Hit the PostgREST root with the service key."""
    if not settings.supabase_url or not settings.supabase_key:
        return "not_configured"
    headers = {"apikey": settings.supabase_key, "Authorization": f"Bearer {settings.supabase_key}"}
    try:
        async with httpx.AsyncClient(timeout=_CHECK_TIMEOUT) as client:
            response = await client.get(f"{settings.supabase_url}/rest/v1/", headers=headers)
        return "connected" if response.status_code < 500 else "disconnected"
    except httpx.HTTPError as exc:
        logger.debug("health_supabase_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check() -> dict:
    """Liveness plus Postgres and Supabase probes, run in parallel."""
    postgres, supabase = await asyncio.gather(_check_postgres(), _check_supabase())
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "backend": settings.backend,
        "postgres": postgres,
        "supabase": supabase,
    }
