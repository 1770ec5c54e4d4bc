from app.schemas.recommendation import (
    CandidateItem,
    MovieDetail,
    MovieListItem,
    MovieListResponse,
    RecommendationResponse,
    RecommendationSnapshot,
    RuleList,
    ScoredRecommendation,
    ScoringRule,
    SnapshotList,
    UserPreferenceProfile,
    utc_now_iso,
)

__all__ = [
    "CandidateItem",
    "MovieDetail",
    "MovieListItem",
    "MovieListResponse",
    "RecommendationResponse",
    "RecommendationSnapshot",
    "RuleList",
    "ScoredRecommendation",
    "ScoringRule",
    "SnapshotList",
    "UserPreferenceProfile",
    "utc_now_iso",
]
