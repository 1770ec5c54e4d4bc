from app.core.config import settings
from app.core.exception import (
    CatalogFetchError,
    InvalidUserIdError,
    RecommendationError,
    RecommendationServiceError,
    RuleStoreError,
    SnapshotStoreError,
)

__all__ = [
    "settings",
    "RecommendationServiceError",
    "InvalidUserIdError",
    "CatalogFetchError",
    "RuleStoreError",
    "RecommendationError",
    "SnapshotStoreError",
]
