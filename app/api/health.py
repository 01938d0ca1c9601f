"""Liveness and readiness probes.

/health reports dependency state but always answers 200 while the
process is up; /ready is what a load balancer should gate traffic on.
Redis only backs the report cache, so losing it degrades /health but
never makes the instance unready.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            logger.warning("Redis ping failed", exc_info=True)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
