import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_monitoring_service
from app.infrastructure.database import get_async_db
from app.services.monitoring.prometheus import RecommendationMonitoring

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_async_db),
    monitoring: RecommendationMonitoring | None = Depends(get_monitoring_service),
) -> JSONResponse:
    """준비 상태 체크 (DB 필수, Redis는 선택)"""
    checks: dict[str, Any] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Readiness database check failed: {e}")
        checks["database"] = "unhealthy"

    if monitoring is not None:
        checks.update(monitoring.check_health())

    # 캐시는 권위 있는 저장소가 아니므로 Redis 장애는 준비 상태에 영향 없음
    ready = checks["database"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )


@router.get("/system-info")
async def get_system_info(
    monitoring: RecommendationMonitoring | None = Depends(get_monitoring_service),
) -> dict[str, Any]:
    """시스템 정보 조회"""
    if monitoring is None:
        return {"error": "monitoring unavailable"}
    return monitoring.get_system_info()
