from pydantic import ValidationError

from app.schemas.recommendation import UserPreferenceProfile
from app.services.recommendation.clients.base import UpstreamClient
from app.services.recommendation.clients.result import FailureKind, UpstreamResult
from app.services.recommendation.constants import SOURCE_PREFERENCES


class PreferenceClient(UpstreamClient):
    """사용자 선호 서비스 클라이언트

    실패 시 기본값으로 대체하지 않고 실패 결과를 그대로 반환한다.
    대체 여부는 호출 측(추천 서비스)이 결정한다.
    """

    source = SOURCE_PREFERENCES

    async def fetch(self, user_id: int) -> UpstreamResult[UserPreferenceProfile]:
        """사용자 선호 프로필 조회 (1회 시도)"""
        async with self.session() as client:
            result = await self._get_json(client, f"/api/v1/users/{user_id}/preferences")

        if not result.ok:
            return UpstreamResult.failure(result.error)  # type: ignore[arg-type]

        try:
            profile = UserPreferenceProfile.model_validate(result.unwrap())
        except ValidationError as e:
            return self._failure(
                FailureKind.DECODE, f"malformed preferences: {e.error_count()} errors"
            )

        return UpstreamResult.success(profile)
