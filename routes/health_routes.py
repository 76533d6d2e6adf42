"""
Health check endpoint.

GET /health reports MongoDB and Redis reachability.
- MongoDB down → "unhealthy" (503); visits and ads live there.
- Redis down or not configured → "degraded" (200); only the stats cache uses it.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _mongo_status(db) -> str:
    try:
        await db.client.admin.command("ping")
    except PyMongoError as e:
        log.warning("health_mongo_failed", error=str(e), error_type=type(e).__name__)
        return "error"
    return "ok"


async def _redis_status(client: Optional[aioredis.Redis]) -> str:
    if client is None:
        return "not_configured"
    try:
        await client.ping()
    except RedisError as e:
        log.warning("health_redis_failed", error=str(e), error_type=type(e).__name__)
        return "error"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    checks = {
        "mongodb": await _mongo_status(request.app.state.db),
        "redis": await _redis_status(getattr(request.app.state, "redis", None)),
    }

    if checks["mongodb"] != "ok":
        status, status_code = "unhealthy", 503
    elif checks["redis"] != "ok":
        status, status_code = "degraded", 200
    else:
        status, status_code = "healthy", 200

    body = HealthResponse(status=status, checks=checks)
    return JSONResponse(status_code=status_code, content=body.model_dump())
