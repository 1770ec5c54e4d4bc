import os
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

# app 모듈 임포트 전에 테스트 환경 설정
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.infrastructure.redis import RedisClient
from app.models.base import Base
from app.schemas.recommendation import (
    CandidateItem,
    RecommendationResponse,
    ScoredRecommendation,
    ScoringRule,
    UserPreferenceProfile,
)
from app.services.recommendation.config import RecommendationConfig


@pytest.fixture
def test_settings() -> Settings:
    """테스트용 Settings 객체 생성"""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        movie_service_url="http://movies.test/",
        user_preference_service_url="http://prefs.test/",
        debug=True,
    )


@pytest.fixture
def reco_config() -> RecommendationConfig:
    """기본값 추천 설정"""
    return RecommendationConfig()


@pytest.fixture
def default_rules() -> list[ScoringRule]:
    """기본 시드와 같은 가중치의 활성 규칙"""
    return [
        ScoringRule(id=3, name="Genre Match", rule_type="genre_match", weight=0.3),
        ScoringRule(id=1, name="Popularity Score", rule_type="popularity", weight=0.4),
        ScoringRule(id=2, name="Recency Bonus", rule_type="recency", weight=0.3),
    ]


@pytest.fixture
def make_candidate() -> Callable[..., CandidateItem]:
    """후보 영화 팩토리"""

    def _make(
        movie_id: int,
        popularity: float = 0.0,
        release_date: str = "2000-01-01",
        genres: list[str] | None = None,
        title: str | None = None,
    ) -> CandidateItem:
        return CandidateItem(
            id=movie_id,
            title=title or f"Movie {movie_id}",
            release_date=release_date,
            genres=genres or [],
            popularity=popularity,
            poster_url=f"https://img.test/{movie_id}.jpg",
            duration=120,
        )

    return _make


@pytest.fixture
def profile() -> UserPreferenceProfile:
    return UserPreferenceProfile(user_id=7, preferred_genres=["Action", "Drama"])


@pytest.fixture
def sample_response() -> RecommendationResponse:
    """캐시/스냅샷 테스트용 추천 응답"""
    return RecommendationResponse(
        user_id=7,
        recommendations=[
            ScoredRecommendation(
                id=10,
                title="Movie 10",
                release_date="2024-01-01",
                genres=["Action"],
                popularity=50.0,
                score=0.85,
                reason="highly popular",
            ),
            ScoredRecommendation(
                id=11,
                title="Movie 11",
                release_date="2019-01-01",
                genres=[],
                popularity=10.0,
                score=0.12,
                reason="recommended for you",
            ),
        ],
        generated_at="2024-06-01T12:00:00Z",
    )


@pytest.fixture
def mock_redis() -> MagicMock:
    """RedisClient 대역 (실제 연결 없음)"""
    client = MagicMock(spec=RedisClient)
    client.get_with_retry.return_value = None
    client.setex_with_retry.return_value = True
    return client


@pytest.fixture
def reset_redis_client() -> Generator[None, None, None]:
    """Reset Redis client singleton for test isolation"""
    original_instance = getattr(RedisClient, "_instance", None)
    original_client = getattr(RedisClient, "_client", None)
    RedisClient._instance = None
    RedisClient._client = None

    yield

    RedisClient._instance = original_instance
    RedisClient._client = original_client


@pytest.fixture
def mock_dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.submit.return_value = True
    return dispatcher


@pytest.fixture
def mock_repositories() -> dict[str, Any]:
    """Mock all repositories"""
    return {
        "rule_repo": AsyncMock(),
        "snapshot_repo": AsyncMock(),
    }


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """공유 인메모리 SQLite 세션 (테스트마다 새 스키마)"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


class FakeUpstream:
    """영화/선호 서비스를 흉내 내는 httpx.MockTransport 핸들러"""

    def __init__(self) -> None:
        self.preferences: dict[int, Any] = {}
        self.preference_status = 200
        self.pages: dict[int, dict[str, Any]] = {}
        self.page_status: dict[int, int] = {}
        self.details: dict[int, dict[str, Any]] = {}
        self.detail_status: dict[int, int] = {}
        self.requests: list[httpx.Request] = []

    def add_movie(
        self,
        page: int,
        movie_id: int,
        popularity: float,
        release_date: str = "2020-01-01",
        genres: list[str] | None = None,
        total_pages: int = 1,
    ) -> None:
        listing = self.pages.setdefault(
            page,
            {"page": page, "page_size": 20, "total_pages": total_pages, "data": []},
        )
        listing["total_pages"] = total_pages
        listing["data"].append(
            {
                "id": movie_id,
                "title": f"Movie {movie_id}",
                "release_date": release_date,
                "popularity": popularity,
                "poster_url": f"https://img.test/{movie_id}.jpg",
            }
        )
        self.details[movie_id] = {
            "id": movie_id,
            "title": f"Movie {movie_id}",
            "overview": "",
            "release_date": release_date,
            "genres": genres or [],
            "language": "en",
            "duration": 100,
            "popularity": popularity,
            "poster_url": f"https://img.test/{movie_id}.jpg",
            "backdrop_url": "",
        }

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/preferences"):
            user_id = int(path.split("/")[4])
            if self.preference_status != 200:
                return httpx.Response(self.preference_status, text="preference service down")
            return httpx.Response(200, json=self.preferences.get(user_id, {"user_id": user_id}))

        if path == "/api/v1/movies":
            page = int(request.url.params["page"])
            status_code = self.page_status.get(page, 200)
            if status_code != 200:
                return httpx.Response(status_code, text="catalog unavailable")
            listing = self.pages.get(
                page, {"page": page, "page_size": 20, "total_pages": page, "data": []}
            )
            return httpx.Response(200, json=listing)

        if path.startswith("/api/v1/movies/"):
            movie_id = int(path.rsplit("/", 1)[1])
            status_code = self.detail_status.get(movie_id, 200)
            if status_code != 200:
                return httpx.Response(status_code, text="detail unavailable")
            return httpx.Response(200, json=self.details[movie_id])

        return httpx.Response(404, text="not found")


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def upstream_http(fake_upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    """FakeUpstream에 연결된 공유 httpx 클라이언트"""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_upstream)) as client:
        yield client


@pytest.fixture
def test_client() -> TestClient:
    """lifespan 없이 생성한 FastAPI 테스트 클라이언트 (의존성은 테스트에서 override)"""
    from app.main import create_app

    return TestClient(create_app())
