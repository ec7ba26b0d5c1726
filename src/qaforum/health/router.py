"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.database import get_session
from qaforum.db.models import SubscriptionPlan
from qaforum.redis_client import get_redis, redis_enabled

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Database reachable with a seeded plan catalog; Redis reachable when configured."""
    checks: dict[str, object] = {}

    try:
        plans = (await db.execute(select(func.count()).select_from(SubscriptionPlan))).scalar_one()
        checks["database"] = "ok"
        checks["plans"] = "ok" if plans else "error: plan catalog is empty"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    if redis_enabled():
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"
    else:
        checks["redis"] = "disabled"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "service": "qaforum",
        "version": settings.app_version,
        "environment": settings.environment,
    }
