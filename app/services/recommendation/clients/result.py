from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """업스트림 실패 유형"""

    TRANSPORT = "transport"
    STATUS = "status"
    DECODE = "decode"


@dataclass(frozen=True)
class UpstreamError:
    """업스트림 호출 실패 정보"""

    source: str
    kind: FailureKind
    message: str
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        details: dict[str, Any] = {"source": self.source, "kind": self.kind.value}
        if self.status_code is not None:
            details["status_code"] = self.status_code
        return details

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.source} returned {self.status_code}: {self.message}"
        return f"{self.source} {self.kind.value} error: {self.message}"


@dataclass(frozen=True)
class UpstreamResult(Generic[T]):
    """업스트림 호출 결과 (성공 값 또는 실패 정보 중 하나)"""

    value: T | None = None
    error: UpstreamError | None = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("UpstreamResult requires exactly one of value or error")

    @classmethod
    def success(cls, value: T) -> "UpstreamResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: UpstreamError) -> "UpstreamResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """성공 값 반환 (실패 결과면 ValueError)"""
        if self.error is not None:
            raise ValueError(str(self.error))
        return self.value  # type: ignore[return-value]
