import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_recommendation_service
from app.core.exception import (
    RecommendationError,
    RecommendationServiceError,
    RuleStoreError,
    SnapshotStoreError,
)
from app.schemas.recommendation import RecommendationResponse, RuleList, SnapshotList
from app.services.recommendation.service import RecommendationService

router = APIRouter()
logger = logging.getLogger(__name__)


def parse_limit(raw: str | None) -> int | None:
    """숫자가 아닌 limit은 미지정으로 처리 (서비스에서 기본값 적용)"""
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@router.get("/users/{user_id}/recommendations", response_model=RecommendationResponse)
async def get_recommendations(
    user_id: int,
    limit: str | None = Query(None, description="추천 개수 (1~50, 범위 밖이면 10)"),
    service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationResponse:
    """사용자 맞춤 영화 추천"""
    try:
        return await service.get_recommendations(user_id=user_id, limit=parse_limit(limit))
    except (HTTPException, RecommendationServiceError):
        # 도메인 예외는 앱 예외 핸들러에서 처리
        raise
    except Exception as e:
        logger.error(
            f"[RECOMMENDATIONS] Failed to get recommendations for user {user_id}: {e}",
            exc_info=True,
        )
        raise RecommendationError("failed to generate recommendations", user_id=user_id) from e


@router.get("/rules", response_model=RuleList)
async def get_rules(
    service: RecommendationService = Depends(get_recommendation_service),
) -> RuleList:
    """활성 스코어링 규칙 조회"""
    try:
        return RuleList(rules=await service.get_rules())
    except (HTTPException, RecommendationServiceError):
        raise
    except Exception as e:
        logger.error(f"[RULES] Failed to get scoring rules: {e}", exc_info=True)
        raise RuleStoreError(str(e)) from e


@router.get("/users/{user_id}/snapshots", response_model=SnapshotList)
async def get_snapshots(
    user_id: int,
    limit: str | None = Query(None, description="조회 개수 (1~50, 범위 밖이면 10)"),
    service: RecommendationService = Depends(get_recommendation_service),
) -> SnapshotList:
    """마지막으로 저장된 사용자 추천 스냅샷 조회"""
    try:
        return await service.get_snapshots(user_id=user_id, limit=parse_limit(limit))
    except (HTTPException, RecommendationServiceError):
        raise
    except Exception as e:
        logger.error(
            f"[SNAPSHOTS] Failed to get snapshots for user {user_id}: {e}", exc_info=True
        )
        raise SnapshotStoreError(str(e), user_id=user_id) from e
