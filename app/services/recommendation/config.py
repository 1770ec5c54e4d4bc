import logging

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RecommendationConfig(BaseSettings):
    """추천 파이프라인 설정"""

    model_config = SettingsConfigDict(
        env_prefix="RECO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # 후보 풀 조회
    prefetch_pages: int = Field(default=3, ge=1, le=10, description="후보 풀 조회 페이지 수")
    page_size: int = Field(default=20, ge=1, le=100, description="페이지당 영화 수")
    detail_concurrency: int = Field(
        default=8, ge=1, le=32, description="영화 상세 동시 조회 상한"
    )

    # 캐시
    cache_ttl_seconds: int = Field(default=600, ge=1, description="추천 캐시 TTL (초)")

    # 결과 개수
    default_limit: int = Field(default=10, ge=1, description="기본 추천 개수")
    max_limit: int = Field(default=50, ge=1, description="최대 추천 개수")

    # 스코어링
    recency_window_days: int = Field(
        default=730, ge=1, description="최신성 점수가 0이 되기까지의 일수"
    )
    reason_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0, description="추천 사유 태그 부여 임계값"
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "RecommendationConfig":
        """기본 추천 개수는 최대 개수를 넘을 수 없음"""
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit({self.default_limit})는 max_limit({self.max_limit}) 이하여야 합니다"
            )
        return self


def get_recommendation_config() -> RecommendationConfig:
    """추천 설정 인스턴스 생성"""
    try:
        return RecommendationConfig()
    except Exception as e:
        logger.error(f"Failed to load recommendation config: {e}")
        raise


recommendation_config = get_recommendation_config()
