"""Service info, health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from moca_gate.config import get_settings
from moca_gate.database import get_session
from moca_gate.redis_client import get_redis

router = APIRouter()

SERVICE_NAME = "Moca Gating System API"


@router.get("/")
async def service_info() -> dict[str, object]:
    """Service banner with the public endpoint map."""
    return {
        "service": SERVICE_NAME,
        "version": get_settings().app_version,
        "status": "healthy",
        "endpoints": {
            "verifyCode": "/api/verify-code",
            "checkEmail": "/api/check-email",
            "checkWallet": "/api/check-wallet",
            "reserve": "/api/reserve",
            "vipStatus": "/api/vip-status",
            "admin": "/api/admin",
        },
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe. Returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe. Checks DB and Redis connectivity.

    Redis is reported but does not gate readiness: the service runs degraded
    (no eligibility cache, no registration throttling) without it.
    """
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {type(exc).__name__}"

    try:
        redis = get_redis()
        await redis.ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {type(exc).__name__}"

    if checks["database"] != "ok":
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
