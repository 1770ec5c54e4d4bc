from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.api.dependencies import get_monitoring_service, get_recommendation_service
from app.api.middleware import _group_endpoint
from app.api.v1.recommendations import parse_limit
from app.core.exception import (
    CatalogFetchError,
    InvalidUserIdError,
    RuleStoreError,
    SnapshotStoreError,
)
from app.infrastructure.database import get_async_db
from app.schemas.recommendation import (
    RecommendationResponse,
    ScoredRecommendation,
    ScoringRule,
    SnapshotList,
)


@pytest.fixture
def mock_service(sample_response: RecommendationResponse) -> MagicMock:
    service = MagicMock()
    service.get_recommendations = AsyncMock(return_value=sample_response)
    service.get_rules = AsyncMock(
        return_value=[
            ScoringRule(id=1, name="Popularity Score", rule_type="popularity", weight=0.4),
            ScoringRule(id=2, name="Recency Bonus", rule_type="recency", weight=0.3),
        ]
    )
    service.get_snapshots = AsyncMock(return_value=SnapshotList(user_id=7, snapshots=[]))
    return service


@pytest.fixture
def client(test_client: TestClient, mock_service: MagicMock) -> TestClient:
    test_client.app.dependency_overrides[get_recommendation_service] = lambda: mock_service
    return test_client


class TestParseLimit:
    @pytest.mark.parametrize(
        "raw,expected", [(None, None), ("5", 5), ("-1", -1), ("abc", None), ("", None)]
    )
    def test_parse_limit(self, raw, expected):
        assert parse_limit(raw) == expected


class TestRecommendationsEndpoint:
    def test_returns_recommendations(self, client, mock_service):
        response = client.get("/api/v1/users/7/recommendations?limit=5")

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == 7
        assert body["generated_at"] == "2024-06-01T12:00:00Z"
        assert [rec["id"] for rec in body["recommendations"]] == [10, 11]
        assert set(body["recommendations"][0]) >= {
            "id",
            "title",
            "release_date",
            "genres",
            "popularity",
            "score",
            "reason",
        }
        mock_service.get_recommendations.assert_awaited_once_with(user_id=7, limit=5)

    def test_non_numeric_limit_treated_as_absent(self, client, mock_service):
        response = client.get("/api/v1/users/7/recommendations?limit=lots")

        assert response.status_code == 200
        mock_service.get_recommendations.assert_awaited_once_with(user_id=7, limit=None)

    def test_missing_limit(self, client, mock_service):
        client.get("/api/v1/users/7/recommendations")

        mock_service.get_recommendations.assert_awaited_once_with(user_id=7, limit=None)

    def test_non_numeric_user_id_rejected(self, client, mock_service):
        response = client.get("/api/v1/users/abc/recommendations")

        assert response.status_code == 422
        mock_service.get_recommendations.assert_not_called()

    def test_non_positive_user_id_rejected(self, client, mock_service):
        mock_service.get_recommendations.side_effect = InvalidUserIdError(0)

        response = client.get("/api/v1/users/0/recommendations")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_USER_ID"

    def test_catalog_failure_is_bad_gateway(self, client, mock_service):
        mock_service.get_recommendations.side_effect = CatalogFetchError(
            "movie-service returned 500: boom",
            details={"source": "movie-service", "kind": "status", "status_code": 500},
        )

        response = client.get("/api/v1/users/7/recommendations")

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "CATALOG_FETCH_FAILED"
        assert body["details"]["source"] == "movie-service"

    def test_unexpected_error_is_internal(self, client, mock_service):
        mock_service.get_recommendations.side_effect = KeyError("boom")

        response = client.get("/api/v1/users/7/recommendations")

        assert response.status_code == 500
        assert response.json()["error"] == "RECOMMENDATION_ERROR"

    def test_empty_recommendations(self, client, mock_service):
        mock_service.get_recommendations.return_value = RecommendationResponse(
            user_id=7, recommendations=[]
        )

        response = client.get("/api/v1/users/7/recommendations")

        assert response.status_code == 200
        assert response.json()["recommendations"] == []


class TestRulesEndpoint:
    def test_returns_active_rules(self, client):
        response = client.get("/api/v1/rules")

        assert response.status_code == 200
        rules = response.json()["rules"]
        assert [rule["rule_type"] for rule in rules] == ["popularity", "recency"]
        assert rules[0]["weight"] == 0.4

    def test_rule_store_error(self, client, mock_service):
        mock_service.get_rules.side_effect = RuleStoreError("database is locked")

        response = client.get("/api/v1/rules")

        assert response.status_code == 500
        assert response.json()["error"] == "RULE_STORE_ERROR"

    def test_unexpected_error_is_wrapped(self, client, mock_service):
        mock_service.get_rules.side_effect = KeyError("boom")

        response = client.get("/api/v1/rules")

        assert response.status_code == 500
        assert response.json()["error"] == "RULE_STORE_ERROR"


class TestSnapshotsEndpoint:
    def test_returns_snapshots(self, client, mock_service):
        response = client.get("/api/v1/users/7/snapshots?limit=3")

        assert response.status_code == 200
        assert response.json() == {"user_id": 7, "snapshots": []}
        mock_service.get_snapshots.assert_awaited_once_with(user_id=7, limit=3)

    def test_snapshot_store_error(self, client, mock_service):
        mock_service.get_snapshots.side_effect = SnapshotStoreError("database is locked", user_id=7)

        response = client.get("/api/v1/users/7/snapshots")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "SNAPSHOT_STORE_ERROR"
        assert body["details"] == {"user_id": 7}

    def test_unexpected_error_is_wrapped(self, client, mock_service):
        mock_service.get_snapshots.side_effect = KeyError("boom")

        response = client.get("/api/v1/users/7/snapshots")

        assert response.status_code == 500
        assert response.json()["error"] == "SNAPSHOT_STORE_ERROR"

    def test_non_positive_user_id_rejected(self, client, mock_service):
        mock_service.get_snapshots.side_effect = InvalidUserIdError(-1)

        response = client.get("/api/v1/users/-1/snapshots")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_USER_ID"


class TestOperationalEndpoints:
    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Process-Time" in response.headers

    def test_metrics(self, test_client):
        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_ready_when_database_reachable(self, test_client):
        db = AsyncMock()
        monitoring = MagicMock()
        monitoring.check_health.return_value = {"redis": "unhealthy", "celery": "unhealthy"}

        async def _db():
            yield db

        test_client.app.dependency_overrides[get_async_db] = _db
        test_client.app.dependency_overrides[get_monitoring_service] = lambda: monitoring

        response = test_client.get("/api/v1/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"]["database"] == "healthy"
        assert body["checks"]["redis"] == "unhealthy"

    def test_not_ready_when_database_down(self, test_client):
        db = AsyncMock()
        db.execute.side_effect = ConnectionRefusedError("database down")

        async def _db():
            yield db

        test_client.app.dependency_overrides[get_async_db] = _db
        test_client.app.dependency_overrides[get_monitoring_service] = lambda: None

        response = test_client.get("/api/v1/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestEndpointGrouping:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/health", "/health"),
            ("/api/v1/users/42/recommendations", "/api/v1/users/{user_id}/recommendations"),
            ("/api/v1/users/42/snapshots", "/api/v1/users/{user_id}/snapshots"),
            ("/api/v1/rules", "/api/v1/rules"),
        ],
    )
    def test_group_endpoint(self, path, expected):
        assert _group_endpoint(path) == expected


def test_scored_recommendation_is_immutable():
    rec = ScoredRecommendation(id=1, title="t", score=0.5, reason="recommended for you")

    with pytest.raises(ValueError):
        rec.score = 0.9  # type: ignore[misc]


class TestExceptionConversion:
    def test_to_http_exception(self):
        error = CatalogFetchError("timeout", details={"source": "movie-service"})

        http_exc = error.to_http_exception()

        assert isinstance(http_exc, HTTPException)
        assert http_exc.status_code == 502
        assert http_exc.detail == {
            "error": "CATALOG_FETCH_FAILED",
            "message": "Catalog fetch failed: timeout",
            "details": {"source": "movie-service"},
        }

    def test_raised_http_exception_uses_error_status(self, client, mock_service):
        mock_service.get_recommendations.side_effect = (
            InvalidUserIdError(0).to_http_exception()
        )

        response = client.get("/api/v1/users/0/recommendations")

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_USER_ID"
