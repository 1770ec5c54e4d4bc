import asyncio
import logging

from pydantic import ValidationError

from app.infrastructure.redis import RedisClient, redis_client
from app.schemas.recommendation import RecommendationResponse
from app.services.recommendation.constants import recommendation_cache_key

logger = logging.getLogger(__name__)


class RecommendationCache:
    """추천 응답 read-through 캐시

    캐시는 권위 있는 저장소가 아니므로 Redis 장애나 손상된 값은
    캐시 미스로 처리하고 요청을 실패시키지 않는다.
    """

    def __init__(self, client: RedisClient | None = None, ttl_seconds: int = 600):
        self.client = client or redis_client
        self.ttl_seconds = ttl_seconds

    async def get(self, user_id: int, limit: int) -> RecommendationResponse | None:
        """캐시된 응답 조회 (미스, 장애, 역직렬화 실패 시 None)"""
        key = recommendation_cache_key(user_id, limit)
        try:
            cached = await asyncio.to_thread(self.client.get_with_retry, key)
        except Exception as e:
            logger.warning(f"[CACHE] Cache read unavailable for key {key}: {e}")
            return None

        if not cached:
            return None

        try:
            return RecommendationResponse.model_validate_json(cached)
        except ValidationError as e:
            logger.warning(f"[CACHE] Discarding undecodable cache entry {key}: {e}")
            return None

    async def set(self, response: RecommendationResponse, limit: int) -> bool:
        """응답 캐시 저장 (TTL 적용, 실패 시 False)"""
        key = recommendation_cache_key(response.user_id, limit)
        try:
            return await asyncio.to_thread(
                self.client.setex_with_retry,
                key,
                self.ttl_seconds,
                response.model_dump_json().encode(),
            )
        except Exception as e:
            logger.warning(f"[CACHE] Cache write unavailable for key {key}: {e}")
            return False
