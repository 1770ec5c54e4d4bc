import asyncio
import logging

import httpx
from pydantic import ValidationError

from app.schemas.recommendation import (
    CandidateItem,
    MovieDetail,
    MovieListItem,
    MovieListResponse,
)
from app.services.recommendation.clients.base import UpstreamClient
from app.services.recommendation.clients.result import FailureKind, UpstreamResult
from app.services.recommendation.constants import SOURCE_CATALOG

logger = logging.getLogger(__name__)


class CatalogClient(UpstreamClient):
    """영화 카탈로그 서비스 클라이언트

    인기순 목록을 페이지 단위로 조회한 뒤, 장르 정보를 얻기 위해
    항목별 상세를 동시에(상한 있음) 조회한다.

    - 페이지 조회 실패: 전체 조회 중단, 실패 결과 반환
    - 항목 상세 조회 실패: 목록 요약만으로 후보 생성 (풀 크기 유지)
    """

    source = SOURCE_CATALOG

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
        page_size: int = 20,
        detail_concurrency: int = 8,
    ):
        super().__init__(base_url, timeout=timeout, http_client=http_client)
        self.page_size = page_size
        self.detail_concurrency = detail_concurrency

    async def fetch_pool(self, depth: int) -> UpstreamResult[list[CandidateItem]]:
        """
        후보 풀 조회

        Args:
            depth: 조회할 최대 페이지 수

        Returns:
            목록 순서를 유지한 후보 리스트 또는 실패 결과
        """
        pool: list[CandidateItem] = []
        semaphore = asyncio.Semaphore(self.detail_concurrency)

        async with self.session() as client:
            for page in range(1, depth + 1):
                page_result = await self._fetch_page(client, page)
                if not page_result.ok:
                    logger.error(f"[CATALOG] Page {page} fetch failed: {page_result.error}")
                    return UpstreamResult.failure(page_result.error)  # type: ignore[arg-type]

                listing = page_result.unwrap()
                pool.extend(await self._fetch_candidates(client, listing.data, semaphore))

                if page >= listing.total_pages:
                    break

        return UpstreamResult.success(pool)

    async def _fetch_page(
        self, client: httpx.AsyncClient, page: int
    ) -> UpstreamResult[MovieListResponse]:
        result = await self._get_json(
            client,
            "/api/v1/movies",
            params={
                "page": page,
                "page_size": self.page_size,
                "sort_by": "popularity",
                "order": "desc",
            },
        )
        if not result.ok:
            return UpstreamResult.failure(result.error)  # type: ignore[arg-type]

        try:
            return UpstreamResult.success(MovieListResponse.model_validate(result.unwrap()))
        except ValidationError as e:
            return self._failure(
                FailureKind.DECODE, f"malformed movie list page {page}: {e.error_count()} errors"
            )

    async def fetch_detail(
        self, client: httpx.AsyncClient, movie_id: int
    ) -> UpstreamResult[MovieDetail]:
        """영화 상세 조회"""
        result = await self._get_json(client, f"/api/v1/movies/{movie_id}")
        if not result.ok:
            return UpstreamResult.failure(result.error)  # type: ignore[arg-type]

        try:
            return UpstreamResult.success(MovieDetail.model_validate(result.unwrap()))
        except ValidationError as e:
            return self._failure(
                FailureKind.DECODE, f"malformed movie detail: {e.error_count()} errors"
            )

    async def _fetch_candidates(
        self,
        client: httpx.AsyncClient,
        items: list[MovieListItem],
        semaphore: asyncio.Semaphore,
    ) -> list[CandidateItem]:
        async def _candidate(item: MovieListItem) -> CandidateItem:
            async with semaphore:
                detail = await self.fetch_detail(client, item.id)

            if not detail.ok:
                logger.warning(
                    f"[CATALOG] Could not fetch movie detail, using list data: "
                    f"movie_id={item.id}, error={detail.error}"
                )
                return CandidateItem.from_summary(item)

            return CandidateItem.from_detail(detail.unwrap())

        # gather는 입력 순서대로 결과를 반환
        return list(await asyncio.gather(*(_candidate(item) for item in items)))
