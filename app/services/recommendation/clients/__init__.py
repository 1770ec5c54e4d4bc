from app.services.recommendation.clients.catalog_client import CatalogClient
from app.services.recommendation.clients.preference_client import PreferenceClient
from app.services.recommendation.clients.result import FailureKind, UpstreamError, UpstreamResult

__all__ = [
    "CatalogClient",
    "PreferenceClient",
    "FailureKind",
    "UpstreamError",
    "UpstreamResult",
]
