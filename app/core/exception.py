import logging
from typing import Any

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class RecommendationServiceError(Exception):
    """추천 서비스 기본 예외 클래스"""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        logger.error(f"{self.__class__.__name__}: {message}")
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 형태로 변환"""
        return {
            "error": self.error_code or "InternalServerError",
            "message": self.message,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """HTTPException으로 변환"""
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class InvalidUserIdError(RecommendationServiceError):
    """잘못된 사용자 ID 요청 시 발생하는 예외"""

    def __init__(self, user_id: Any):
        super().__init__(
            message=f"Invalid user ID: {user_id}",
            error_code="INVALID_USER_ID",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"user_id": user_id},
        )


class CatalogFetchError(RecommendationServiceError):
    """후보 영화 목록 조회 실패 시 발생하는 예외"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Catalog fetch failed: {message}",
            error_code="CATALOG_FETCH_FAILED",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


class RuleStoreError(RecommendationServiceError):
    """스코어링 규칙 조회 실패 시 발생하는 예외"""

    def __init__(self, message: str):
        super().__init__(
            message=f"Rule store error: {message}",
            error_code="RULE_STORE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class SnapshotStoreError(RecommendationServiceError):
    """추천 스냅샷 조회 실패 시 발생하는 예외"""

    def __init__(self, message: str, user_id: int | None = None):
        super().__init__(
            message=f"Snapshot store error: {message}",
            error_code="SNAPSHOT_STORE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"user_id": user_id} if user_id is not None else None,
        )


class RecommendationError(RecommendationServiceError):
    """추천 생성 중 발생하는 예외"""

    def __init__(self, message: str, user_id: int | None = None):
        full_message = "Recommendation error"
        if user_id:
            full_message += f" for user {user_id}"
        full_message += f": {message}"
        super().__init__(
            message=full_message,
            error_code="RECOMMENDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
