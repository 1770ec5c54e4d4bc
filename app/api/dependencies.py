import logging

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.infrastructure.database import get_async_db
from app.services.monitoring.prometheus import RecommendationMonitoring
from app.services.monitoring.prometheus import get_monitoring_service as _get_monitoring_service
from app.services.recommendation.cache import RecommendationCache
from app.services.recommendation.clients import CatalogClient, PreferenceClient
from app.services.recommendation.config import RecommendationConfig, recommendation_config
from app.services.recommendation.repositories import RuleRepository, SnapshotRepository
from app.services.recommendation.service import RecommendationService
from app.services.recommendation.snapshot_dispatcher import SnapshotDispatcher

logger = logging.getLogger(__name__)


def get_reco_config() -> RecommendationConfig:
    """추천 설정 의존성 주입"""
    return recommendation_config


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    """lifespan에서 생성한 공유 HTTP 클라이언트 (없으면 None)"""
    return getattr(request.app.state, "http_client", None)


def get_recommendation_service(
    db: AsyncSession = Depends(get_async_db),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
    config: RecommendationConfig = Depends(get_reco_config),
) -> RecommendationService:
    """추천 서비스 의존성 주입"""
    preference_client = PreferenceClient(
        settings.user_preference_service_url,
        timeout=settings.upstream_timeout_seconds,
        http_client=http_client,
    )
    catalog_client = CatalogClient(
        settings.movie_service_url,
        timeout=settings.upstream_timeout_seconds,
        http_client=http_client,
        page_size=config.page_size,
        detail_concurrency=config.detail_concurrency,
    )

    return RecommendationService(
        rule_repo=RuleRepository(db),
        snapshot_repo=SnapshotRepository(db),
        preference_client=preference_client,
        catalog_client=catalog_client,
        cache=RecommendationCache(ttl_seconds=config.cache_ttl_seconds),
        dispatcher=SnapshotDispatcher(),
        config=config,
    )


def get_monitoring_service() -> RecommendationMonitoring | None:
    """모니터링 서비스 의존성 주입"""
    try:
        return _get_monitoring_service()
    except Exception as e:
        logger.error(f"Failed to initialize monitoring service: {e}")
        return None
