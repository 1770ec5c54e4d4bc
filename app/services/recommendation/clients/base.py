from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from app.services.recommendation.clients.result import FailureKind, UpstreamError, UpstreamResult

# 에러 메시지에 포함할 응답 본문 최대 길이
MAX_ERROR_BODY_LENGTH = 200


class UpstreamClient:
    """업스트림 JSON API 공통 클라이언트 (재시도 없음, 호출당 타임아웃)"""

    source = "upstream"

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @asynccontextmanager
    async def session(self) -> AsyncIterator[httpx.AsyncClient]:
        """공유 클라이언트가 있으면 재사용, 없으면 임시 클라이언트 생성"""
        if self._http_client is not None:
            yield self._http_client
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    def _failure(
        self, kind: FailureKind, message: str, status_code: int | None = None
    ) -> UpstreamResult[Any]:
        return UpstreamResult.failure(
            UpstreamError(
                source=self.source, kind=kind, message=message, status_code=status_code
            )
        )

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> UpstreamResult[Any]:
        """GET 요청 후 JSON 본문 반환 (전송 오류, 200 이외 상태, 디코딩 실패는 실패 결과)"""
        url = f"{self.base_url}{path}"

        try:
            response = await client.get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            return self._failure(FailureKind.TRANSPORT, f"{type(e).__name__}: {e}")

        if response.status_code != httpx.codes.OK:
            return self._failure(
                FailureKind.STATUS,
                response.text[:MAX_ERROR_BODY_LENGTH],
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            return self._failure(FailureKind.DECODE, f"invalid JSON body: {e}")

        if payload is None:
            return self._failure(FailureKind.DECODE, "empty JSON body")

        return UpstreamResult.success(payload)
