import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.recommendation import UserRecommendationSnapshot

logger = logging.getLogger(__name__)


class SnapshotRepository:
    """추천 스냅샷 데이터 접근 객체"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self) -> Any:
        # (user_id, movie_id) 유니크 제약 기반 upsert는 방언별 insert 구문 사용
        dialect = self.db.bind.dialect.name if self.db.bind is not None else "postgresql"
        if dialect == "sqlite":
            return sqlite_insert(UserRecommendationSnapshot)
        return pg_insert(UserRecommendationSnapshot)

    async def get_snapshots(
        self, user_id: int, limit: int = 10
    ) -> list[UserRecommendationSnapshot]:
        """사용자 스냅샷 조회 (점수 내림차순)"""
        result = await self.db.execute(
            select(UserRecommendationSnapshot)
            .where(UserRecommendationSnapshot.user_id == user_id)
            .order_by(UserRecommendationSnapshot.score.desc(), UserRecommendationSnapshot.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def clear_snapshots(self, user_id: int, commit: bool = True) -> int:
        """사용자 스냅샷 전체 삭제"""
        result = await self.db.execute(
            delete(UserRecommendationSnapshot).where(UserRecommendationSnapshot.user_id == user_id)
        )
        if commit:
            await self.db.commit()
        return result.rowcount or 0

    async def upsert_snapshot(
        self,
        user_id: int,
        movie_id: int,
        score: float,
        generated_at: datetime,
        commit: bool = True,
    ) -> None:
        """스냅샷 저장 (이미 있으면 점수/생성 시각 갱신)"""
        stmt = self._insert().values(
            user_id=user_id, movie_id=movie_id, score=score, generated_at=generated_at
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "movie_id"],
            set_={"score": stmt.excluded.score, "generated_at": stmt.excluded.generated_at},
        )
        await self.db.execute(stmt)
        if commit:
            await self.db.commit()

    async def replace_snapshots(
        self, user_id: int, items: Iterable[tuple[int, float]], generated_at: datetime
    ) -> int:
        """
        사용자 스냅샷 교체

        기존 행을 삭제한 뒤 (movie_id, score)마다 upsert 한다. 삭제는 먼저 커밋되므로
        중간에 실패하면 일부만 저장된 상태가 남을 수 있다. 스냅샷은 응답/캐시와
        트랜잭션으로 묶이지 않는 파생 데이터다.

        Returns:
            저장된 스냅샷 수
        """
        await self.clear_snapshots(user_id)

        count = 0
        for movie_id, score in items:
            await self.upsert_snapshot(user_id, movie_id, score, generated_at, commit=False)
            count += 1

        await self.db.commit()
        logger.info(f"Replaced snapshots for user {user_id}: {count} rows")
        return count
