"""Operational endpoints for the load balancer and deploy tooling.

``/health`` never touches a dependency. ``/ready`` reports each backing
service separately and stays 200 while degraded, since the chat socket
keeps working without Redis.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from c42.config import get_settings
from c42.database import get_session
from c42.redis_client import ping_redis

router = APIRouter()


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.scalar(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Store and Redis reachability plus the number of live chat sockets."""
    checks = {
        "database": await _check_database(db),
        "redis": await ping_redis(),
    }
    status = "ready" if all(result == "ok" for result in checks.values()) else "degraded"
    return {
        "status": status,
        "checks": checks,
        "websocket_connections": request.app.state.connection_registry.connection_count,
    }


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
