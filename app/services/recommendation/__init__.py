from app.services.recommendation.config import RecommendationConfig, recommendation_config
from app.services.recommendation.constants import RuleType, recommendation_cache_key
from app.services.recommendation.scoring import rank_recommendations, score_candidates
from app.services.recommendation.service import RecommendationService

__all__ = [
    "RecommendationService",
    "RecommendationConfig",
    "recommendation_config",
    "RuleType",
    "recommendation_cache_key",
    "score_candidates",
    "rank_recommendations",
]
