import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from app.api.middleware import LoggingMiddleware, MetricsMiddleware
from app.api.v1.monitoring import router as monitoring_router
from app.api.v1.recommendations import router as recommendations_router
from app.core.config import settings
from app.core.exception import RecommendationServiceError
from app.infrastructure.database import AsyncSessionLocal, async_engine, create_tables
from app.infrastructure.redis import redis_client
from app.services.recommendation.repositories import RuleRepository
from app.services.recommendation.snapshot_dispatcher import drain_background_tasks

logger = logging.getLogger(__name__)

# 종료 시 제출 대기 중인 스냅샷 작업을 기다리는 최대 시간 (초)
SHUTDOWN_DRAIN_TIMEOUT = 5.0


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """애플리케이션 생명주기 관리"""
    configure_logging()
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    try:
        # 데이터베이스 연결 확인
        async with async_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

    # 스키마 생성 및 기본 규칙 시딩
    await create_tables()
    async with AsyncSessionLocal() as session:
        seeded = await RuleRepository(session).seed_default_rules()
        if seeded:
            logger.info(f"Seeded {seeded} default scoring rules")

    # Redis 연결 확인 (캐시 없이도 서비스 가능)
    try:
        redis_client.get_client().ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed, caching disabled until it recovers: {e}")

    app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)

    logger.info(f"{settings.app_name} started successfully")

    yield

    logger.info(f"Shutting down {settings.app_name}...")

    await drain_background_tasks(timeout=SHUTDOWN_DRAIN_TIMEOUT)

    try:
        await app.state.http_client.aclose()
    except Exception as e:
        logger.warning(f"HTTP client close failed: {e}")

    try:
        await async_engine.dispose()
    except Exception as e:
        logger.warning(f"Engine disposal failed: {e}")

    logger.info(f"{settings.app_name} shut down complete")


async def recommendation_exception_handler(
    request: Request, exc: RecommendationServiceError
) -> JSONResponse:
    """도메인 예외 핸들러"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """일반 예외 핸들러"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
        },
    )


def create_app() -> FastAPI:
    """FastAPI 앱 팩토리"""
    app = FastAPI(
        title=settings.app_name,
        description="Personalized movie recommendations with rule-based scoring",
        version=settings.version,
        lifespan=lifespan,
    )

    # 미들웨어 설정
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    # 예외 핸들러
    app.add_exception_handler(RecommendationServiceError, recommendation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 라우터 등록
    app.include_router(monitoring_router, prefix="/api/v1", tags=["monitoring"])
    app.include_router(recommendations_router, prefix="/api/v1", tags=["recommendations"])

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus 메트릭 노출"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """헬스 체크"""
        return {"status": "healthy", "service": "movie-recommendation-service"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
