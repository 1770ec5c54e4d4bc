from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models.base import Base
from app.models.recommendation import RecommendationRule, UserRecommendationSnapshot  # noqa: F401

# 데이터베이스 연결 풀 설정 (중앙 관리)
POOL_SIZE = 20
MAX_OVERFLOW = 30
POOL_RECYCLE = 300
POOL_PRE_PING = True


def build_async_url(database_url: str) -> str:
    """동기 드라이버 URL을 비동기 드라이버 URL로 변환"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _engine_options(database_url: str) -> dict[str, Any]:
    # SQLite(테스트용)는 풀 크기 옵션을 지원하지 않음
    if database_url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {
        "pool_pre_ping": POOL_PRE_PING,
        "pool_recycle": POOL_RECYCLE,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "echo": settings.debug,
    }


# 비동기 SQLAlchemy 엔진
async_engine = create_async_engine(
    build_async_url(settings.database_url),
    **_engine_options(settings.database_url),
)

# 세션 팩토리
AsyncSessionLocal = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션 의존성 주입"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables() -> None:
    """테이블 생성"""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
