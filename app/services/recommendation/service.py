import asyncio
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from app.core.exception import (
    CatalogFetchError,
    InvalidUserIdError,
    RecommendationServiceError,
    RuleStoreError,
    SnapshotStoreError,
)
from app.schemas.recommendation import (
    CandidateItem,
    RecommendationResponse,
    RecommendationSnapshot,
    ScoringRule,
    SnapshotList,
    UserPreferenceProfile,
)
from app.services.monitoring.prometheus import (
    recommendation_latency,
    recommendation_requests,
    upstream_failures,
)
from app.services.recommendation.cache import RecommendationCache
from app.services.recommendation.clients import CatalogClient, PreferenceClient, UpstreamError
from app.services.recommendation.config import RecommendationConfig, recommendation_config
from app.services.recommendation.repositories import RuleRepository, SnapshotRepository
from app.services.recommendation.scoring import rank_recommendations, score_candidates
from app.services.recommendation.snapshot_dispatcher import SnapshotDispatcher

logger = logging.getLogger(__name__)


class RecommendationService:
    """추천 서비스

    요청 흐름:
    캐시 확인 → (미스) 선호 정보 + 후보 풀 동시 조회 → 활성 규칙 조회 →
    스코어링 → 정렬/절단 → 캐시 저장 → 스냅샷 저장 태스크 제출(분리 실행) → 응답
    """

    def __init__(
        self,
        rule_repo: RuleRepository,
        snapshot_repo: SnapshotRepository,
        preference_client: PreferenceClient,
        catalog_client: CatalogClient,
        cache: RecommendationCache,
        dispatcher: SnapshotDispatcher,
        config: RecommendationConfig = recommendation_config,
    ):
        self.rule_repo = rule_repo
        self.snapshot_repo = snapshot_repo
        self.preference_client = preference_client
        self.catalog_client = catalog_client
        self.cache = cache
        self.dispatcher = dispatcher
        self.config = config

    def normalize_limit(self, limit: int | None) -> int:
        """범위(1 ~ max_limit)를 벗어나면 기본값 사용"""
        if limit is None or limit <= 0 or limit > self.config.max_limit:
            return self.config.default_limit
        return limit

    async def get_recommendations(
        self, user_id: int, limit: int | None = None
    ) -> RecommendationResponse:
        """사용자 맞춤 추천 목록 생성"""
        if user_id <= 0:
            raise InvalidUserIdError(user_id)

        limit = self.normalize_limit(limit)
        start_time = time.time()

        try:
            # 캐시 확인
            cached = await self.cache.get(user_id, limit)
            if cached is not None:
                logger.debug(f"[RECOMMENDATION] Cache hit: user={user_id}, limit={limit}")
                self._observe("cache_hit", start_time)
                return cached

            profile, pool = await self._fetch_inputs(user_id)

            if not pool:
                logger.info(f"[RECOMMENDATION] Empty candidate pool for user {user_id}")
                self._observe("empty", start_time)
                return RecommendationResponse(user_id=user_id, recommendations=[])

            # 규칙은 캐시하지 않고 매 요청마다 조회
            rules = await self.get_rules()

            scored = score_candidates(
                pool,
                profile,
                rules,
                recency_window_days=self.config.recency_window_days,
                reason_threshold=self.config.reason_threshold,
            )
            response = RecommendationResponse(
                user_id=user_id, recommendations=rank_recommendations(scored, limit)
            )

            await self.cache.set(response, limit)
            self.dispatcher.submit_detached(response)

            logger.info(
                f"[RECOMMENDATION] Generated {len(response.recommendations)} recommendations "
                f"for user {user_id} from {len(pool)} candidates"
            )
            self._observe("computed", start_time)
            return response

        except RecommendationServiceError:
            self._observe("error", start_time)
            raise

    async def _fetch_inputs(
        self, user_id: int
    ) -> tuple[UserPreferenceProfile, list[CandidateItem]]:
        """선호 정보와 후보 풀 동시 조회"""
        preference_result, pool_result = await asyncio.gather(
            self.preference_client.fetch(user_id),
            self.catalog_client.fetch_pool(self.config.prefetch_pages),
        )

        if preference_result.ok:
            profile = preference_result.unwrap()
        else:
            self._record_upstream_failure(preference_result.error)
            logger.warning(
                f"[RECOMMENDATION] Could not fetch preferences for user {user_id}, "
                f"using defaults: {preference_result.error}"
            )
            profile = UserPreferenceProfile.default(user_id)

        if pool_result.error is not None:
            self._record_upstream_failure(pool_result.error)
            raise CatalogFetchError(str(pool_result.error), details=pool_result.error.to_dict())

        return profile, pool_result.unwrap()

    async def get_rules(self) -> list[ScoringRule]:
        """활성 스코어링 규칙 조회"""
        try:
            rules = await self.rule_repo.get_active_rules()
        except SQLAlchemyError as e:
            raise RuleStoreError(str(e)) from e
        return [ScoringRule.model_validate(rule) for rule in rules]

    async def get_snapshots(self, user_id: int, limit: int | None = None) -> SnapshotList:
        """저장된 사용자 추천 스냅샷 조회"""
        if user_id <= 0:
            raise InvalidUserIdError(user_id)

        try:
            rows = await self.snapshot_repo.get_snapshots(user_id, self.normalize_limit(limit))
        except SQLAlchemyError as e:
            raise SnapshotStoreError(str(e), user_id=user_id) from e
        return SnapshotList(
            user_id=user_id,
            snapshots=[RecommendationSnapshot.model_validate(row) for row in rows],
        )

    @staticmethod
    def _record_upstream_failure(error: UpstreamError | None) -> None:
        if error is not None:
            upstream_failures.labels(source=error.source, kind=error.kind.value).inc()

    @staticmethod
    def _observe(outcome: str, start_time: float) -> None:
        recommendation_requests.labels(outcome=outcome).inc()
        recommendation_latency.labels(outcome=outcome).observe(time.time() - start_time)
