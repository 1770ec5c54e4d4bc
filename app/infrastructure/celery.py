from typing import Any

from celery import Celery  # type: ignore

from app.core.config import settings

SNAPSHOT_TASK_NAME = "persist_recommendation_snapshots"

# Celery 애플리케이션 생성
celery_app = Celery(
    "movie_recommendation",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.services.recommendation.tasks"],
)

# Celery 설정
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_routes={SNAPSHOT_TASK_NAME: {"queue": settings.celery_snapshot_queue}},
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    result_expires=60 * 60,  # 1시간
    worker_prefetch_multiplier=4,
    broker_connection_timeout=2,
    broker_connection_retry_on_startup=True,
)


def check_celery_health() -> dict[str, Any]:
    """스냅샷 워커 상태 확인 (워커 없음도 서비스 장애는 아님)"""
    try:
        replies = celery_app.control.inspect(timeout=1.0).ping() or {}
    except Exception as e:
        return {"status": "error", "message": str(e)}

    if not replies:
        return {"status": "unhealthy", "message": "No snapshot workers responding"}
    return {"status": "healthy", "workers": sorted(replies)}
