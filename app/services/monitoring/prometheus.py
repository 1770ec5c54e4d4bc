import logging
from typing import Any

import psutil
from prometheus_client import Counter, Histogram

from app.core.config import settings
from app.infrastructure.celery import check_celery_health
from app.infrastructure.redis import is_redis_healthy

logger = logging.getLogger(__name__)

# 추천 시스템 메트릭
recommendation_requests = Counter(
    "recommendation_requests_total",
    "Total recommendation requests by outcome",
    ["outcome"],  # cache_hit | computed | empty | error
)

recommendation_latency = Histogram(
    "recommendation_latency_seconds",
    "Time spent generating recommendations",
    ["outcome"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0],
)

upstream_failures = Counter(
    "recommendation_upstream_failures_total",
    "Upstream fetch failures by source and kind",
    ["source", "kind"],
)

snapshot_dispatches = Counter(
    "recommendation_snapshot_dispatch_total",
    "Snapshot persistence task submissions",
    ["status"],  # submitted | failed
)


class RecommendationMonitoring:
    """서비스 상태 및 시스템 정보 조회"""

    def check_health(self) -> dict[str, Any]:
        """의존 시스템 상태 확인 (Redis, Celery 워커)"""
        redis_ok = is_redis_healthy()
        return {
            "redis": "healthy" if redis_ok else "unhealthy",
            "celery": check_celery_health()["status"],
        }

    def get_system_info(self) -> dict[str, Any]:
        """시스템 정보 조회"""
        try:
            return {
                "memory_usage": psutil.virtual_memory().percent,
                "cpu_usage": psutil.cpu_percent(interval=None),
                "disk_usage": psutil.disk_usage("/").percent,
                "environment": settings.environment,
                "version": settings.version,
            }
        except Exception as e:
            logger.error(f"Failed to get system info: {e}")
            return {"error": str(e)}


def get_monitoring_service() -> RecommendationMonitoring:
    """모니터링 서비스 인스턴스 생성"""
    return RecommendationMonitoring()
