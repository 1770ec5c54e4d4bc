from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def utc_now_iso() -> str:
    """현재 UTC 시각을 ISO-8601 문자열(초 단위, 'Z' 접미사)로 반환"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _none_to_str(value: Any) -> Any:
    return "" if value is None else value


StrList = Annotated[list[str], BeforeValidator(_none_to_list)]
NullableStr = Annotated[str, BeforeValidator(_none_to_str)]


class ScoringRule(BaseModel):
    """스코어링 규칙 스키마"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    rule_type: str
    weight: float
    is_active: bool = True
    created_at: datetime | None = None


class RuleList(BaseModel):
    """활성 규칙 목록 응답 스키마"""

    rules: list[ScoringRule]


class UserPreferenceProfile(BaseModel):
    """사용자 선호 프로필 (선호 서비스 응답)"""

    user_id: int
    preferred_genres: StrList = Field(default_factory=list)
    preferred_language: NullableStr = ""
    min_rating: float = 0.0

    @classmethod
    def default(cls, user_id: int) -> "UserPreferenceProfile":
        """선호 정보 조회 실패 시 사용하는 기본 프로필"""
        return cls(user_id=user_id)

    @property
    def genre_set(self) -> frozenset[str]:
        """소문자로 정규화한 선호 장르 집합"""
        return frozenset(genre.lower() for genre in self.preferred_genres)


class MovieListItem(BaseModel):
    """영화 목록 응답의 요약 항목"""

    id: int
    title: NullableStr = ""
    release_date: NullableStr = ""
    popularity: float = 0.0
    poster_url: NullableStr = ""


class MovieListResponse(BaseModel):
    """영화 목록 페이지 응답"""

    page: int = 1
    page_size: int = 0
    total_pages: int = 0
    total_results: int = 0
    data: Annotated[list[MovieListItem], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )


class MovieDetail(BaseModel):
    """영화 상세 응답"""

    id: int
    title: NullableStr = ""
    overview: NullableStr = ""
    release_date: NullableStr = ""
    genres: StrList = Field(default_factory=list)
    language: NullableStr = ""
    duration: int = 0
    popularity: float = 0.0
    poster_url: NullableStr = ""
    backdrop_url: NullableStr = ""


class CandidateItem(BaseModel):
    """스코어링 대상 후보 영화"""

    id: int
    title: str
    release_date: str = ""
    genres: list[str] = Field(default_factory=list)
    popularity: float = Field(default=0.0, ge=0.0)
    poster_url: str = ""
    duration: int = 0

    @classmethod
    def from_detail(cls, detail: MovieDetail) -> "CandidateItem":
        return cls(
            id=detail.id,
            title=detail.title,
            release_date=detail.release_date,
            genres=list(detail.genres),
            popularity=max(detail.popularity, 0.0),
            poster_url=detail.poster_url,
            duration=detail.duration,
        )

    @classmethod
    def from_summary(cls, item: MovieListItem) -> "CandidateItem":
        """상세 조회 실패 시 목록 요약만으로 후보 생성 (장르 없음)"""
        return cls(
            id=item.id,
            title=item.title,
            release_date=item.release_date,
            genres=[],
            popularity=max(item.popularity, 0.0),
            poster_url=item.poster_url,
            duration=0,
        )


class ScoredRecommendation(BaseModel):
    """개별 추천 결과 스키마"""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    release_date: str = ""
    genres: list[str] = Field(default_factory=list)
    popularity: float = 0.0
    poster_url: str = ""
    score: float
    reason: str


class RecommendationResponse(BaseModel):
    """추천 목록 응답 스키마"""

    user_id: int
    recommendations: list[ScoredRecommendation]
    generated_at: str = Field(default_factory=utc_now_iso)


class RecommendationSnapshot(BaseModel):
    """저장된 추천 스냅샷 스키마"""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    movie_id: int
    score: float
    generated_at: datetime


class SnapshotList(BaseModel):
    """사용자 스냅샷 목록 응답 스키마"""

    user_id: int
    snapshots: list[RecommendationSnapshot]
