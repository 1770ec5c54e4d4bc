import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any

import structlog
from celery import Task
from prometheus_client import Counter, Gauge, Histogram
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.infrastructure.celery import SNAPSHOT_TASK_NAME, celery_app
from app.infrastructure.database import AsyncSessionLocal, async_engine
from app.services.recommendation.repositories import SnapshotRepository

# 구조화된 로거 설정
logger = structlog.get_logger(__name__)

# Prometheus 메트릭
task_counter = Counter(
    "celery_tasks_total", "Total number of Celery tasks", ["task_name", "status"]
)

task_duration = Histogram("celery_task_duration_seconds", "Duration of Celery tasks", ["task_name"])

active_tasks = Gauge("celery_active_tasks", "Number of active Celery tasks")


class BaseTask(Task):  # type: ignore[misc]
    """기본 Celery 태스크 (구조화 로깅 + 메트릭)"""

    # 타임아웃 설정 (초)
    time_limit = 300
    soft_time_limit = 240

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """태스크 실행 래퍼"""
        self.start_time = time.time()
        active_tasks.inc()

        logger.info(
            "Task started",
            task_name=self.name,
            task_id=self.request.id,
            args_count=len(args),
            kwargs_count=len(kwargs),
        )

        return super().__call__(*args, **kwargs)

    def _elapsed(self) -> float:
        return time.time() - getattr(self, "start_time", time.time())

    def on_success(
        self, retval: Any, task_id: str, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> None:
        """성공 시 구조화된 로깅 및 메트릭"""
        duration = self._elapsed()
        status = retval.get("status", "success") if isinstance(retval, dict) else "success"

        logger.info(
            "Task completed",
            task_name=self.name,
            task_id=task_id,
            duration=duration,
            status=status,
        )

        task_counter.labels(task_name=self.name, status=status).inc()
        task_duration.labels(task_name=self.name).observe(duration)
        active_tasks.dec()

    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        einfo: Any,
    ) -> None:
        """실패 시 상세 로깅"""
        duration = self._elapsed()

        logger.error(
            "Task failed",
            task_name=self.name,
            task_id=task_id,
            duration=duration,
            error=str(exc),
            error_type=type(exc).__name__,
            traceback=str(einfo),
        )

        task_counter.labels(task_name=self.name, status="failure").inc()
        task_duration.labels(task_name=self.name).observe(duration)
        active_tasks.dec()


def parse_generated_at(value: str) -> datetime:
    """ISO-8601 생성 시각 파싱 (타임존 없으면 UTC)"""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=1, max=5),
    retry=retry_if_exception_type((ConnectionError, TimeoutError)),
    before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
    reraise=True,
)
def replace_user_snapshots(
    user_id: int, items: list[tuple[int, float]], generated_at: datetime
) -> int:
    """새 이벤트 루프에서 사용자 스냅샷 교체 실행"""

    async def _replace() -> int:
        try:
            async with AsyncSessionLocal() as db:
                return await SnapshotRepository(db).replace_snapshots(
                    user_id, items, generated_at
                )
        finally:
            # 이전 이벤트 루프에 묶인 커넥션이 재사용되지 않도록 풀 정리
            await async_engine.dispose()

    return asyncio.run(_replace())


@celery_app.task(bind=True, base=BaseTask, name=SNAPSHOT_TASK_NAME)
def persist_recommendation_snapshots(
    self: BaseTask,
    user_id: int,
    items: list[dict[str, Any]],
    generated_at: str,
) -> dict[str, Any]:
    """
    추천 스냅샷 저장 태스크

    Args:
        user_id: 사용자 ID
        items: [{"movie_id": int, "score": float}, ...] (응답 순서)
        generated_at: 응답 생성 시각 (ISO-8601)

    Returns:
        처리 결과 (실패도 예외 대신 결과로 반환)
    """
    try:
        if user_id <= 0:
            raise ValueError(f"Invalid user_id: {user_id}")

        rows = [(int(item["movie_id"]), float(item["score"])) for item in items]
        count = replace_user_snapshots(user_id, rows, parse_generated_at(generated_at))

        logger.info(
            "Recommendation snapshots persisted",
            user_id=user_id,
            count=count,
            task_id=self.request.id,
        )

        return {
            "status": "success",
            "user_id": user_id,
            "count": count,
            "task_id": self.request.id,
        }

    except Exception as e:
        logger.error(
            "Failed to persist recommendation snapshots",
            user_id=user_id,
            error=str(e),
            error_type=type(e).__name__,
            task_id=self.request.id,
            environment=settings.environment,
        )

        return {
            "status": "error",
            "error": str(e),
            "user_id": user_id,
            "task_id": self.request.id,
        }
