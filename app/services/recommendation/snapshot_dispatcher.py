import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from app.schemas.recommendation import RecommendationResponse
from app.services.monitoring.prometheus import snapshot_dispatches
from app.services.recommendation.tasks import persist_recommendation_snapshots

logger = logging.getLogger(__name__)

# 요청과 분리된 백그라운드 작업 참조 (GC 방지)
_background_tasks: set[asyncio.Task[Any]] = set()


def spawn_detached(coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    """요청 취소와 무관하게 실행되는 백그라운드 작업 생성"""
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks(timeout: float | None = None) -> None:
    """대기 중인 백그라운드 작업 완료 대기 (종료 시/테스트용)"""
    if not _background_tasks:
        return
    await asyncio.wait(set(_background_tasks), timeout=timeout)


class SnapshotDispatcher:
    """추천 스냅샷 저장 태스크 제출기

    태스크 큐(Celery)에 스냅샷 교체 작업을 제출한다. 제출 실패는 로그와
    메트릭으로만 드러나며 호출자에게 전파되지 않는다.
    """

    def __init__(self, task: Any = None):
        self.task = task or persist_recommendation_snapshots

    def submit(self, response: RecommendationResponse) -> bool:
        """스냅샷 태스크 제출 (블로킹 호출, 실패 시 False)"""
        items = [{"movie_id": rec.id, "score": rec.score} for rec in response.recommendations]
        try:
            self.task.apply_async(
                kwargs={
                    "user_id": response.user_id,
                    "items": items,
                    "generated_at": response.generated_at,
                },
                retry=False,
            )
        except Exception as e:
            logger.error(
                f"[SNAPSHOT] Failed to submit snapshot task for user {response.user_id}: {e}"
            )
            snapshot_dispatches.labels(status="failed").inc()
            return False

        snapshot_dispatches.labels(status="submitted").inc()
        return True

    def submit_detached(self, response: RecommendationResponse) -> asyncio.Task[Any]:
        """스레드에서 제출하여 응답을 블로킹하지 않음"""
        return spawn_detached(asyncio.to_thread(self.submit, response))
