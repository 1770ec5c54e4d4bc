import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

PROCESS_TIME_HEADER = "X-Process-Time"

# 그룹화 없이 그대로 라벨로 쓰는 경로
_STATIC_PATHS = frozenset({"/health", "/metrics", "/docs", "/openapi.json", "/api/v1/rules"})


def _group_endpoint(path: str) -> str:
    """
    사용자 ID가 포함된 경로를 템플릿으로 묶어 메트릭 라벨 카디널리티 제한

    Args:
        path: 원본 요청 경로

    Returns:
        /api/v1/users/123/recommendations -> /api/v1/users/{user_id}/recommendations
    """
    if path in _STATIC_PATHS:
        return path

    if path.startswith("/api/v1/users/"):
        parts = path.split("/")
        if len(parts) >= 6:
            return f"/api/v1/users/{{user_id}}/{parts[5]}"
        return "/api/v1/users/"

    return path


http_requests = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint_group", "status_code"]
)

http_latency = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint_group"],
    # 추천 계산은 업스트림 3페이지 + 상세 조회를 포함
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """HTTP 요청 메트릭 수집 미들웨어"""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        endpoint_group = _group_endpoint(request.url.path)

        response = await call_next(request)

        http_requests.labels(
            method=request.method,
            endpoint_group=endpoint_group,
            status_code=str(response.status_code),
        ).inc()
        http_latency.labels(method=request.method, endpoint_group=endpoint_group).observe(
            time.perf_counter() - start_time
        )
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청 로깅 미들웨어 (처리 시간 헤더 포함)"""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        query = f"?{request.url.query}" if request.url.query else ""

        logger.debug(f"Request started: {request.method} {request.url.path}{query}")

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers[PROCESS_TIME_HEADER] = f"{process_time:.4f}"

        message = (
            f"Request completed: {request.method} {request.url.path}{query} "
            f"- Status: {response.status_code} - Time: {process_time:.4f}s"
        )
        if response.status_code >= 500:
            logger.warning(message)
        else:
            logger.info(message)

        return response
