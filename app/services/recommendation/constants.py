from enum import Enum


class RuleType(str, Enum):
    """스코어링 규칙 타입"""

    POPULARITY = "popularity"
    RECENCY = "recency"
    GENRE_MATCH = "genre_match"


# 캐시 키
CACHE_KEY_PREFIX = "recommendations"


def recommendation_cache_key(user_id: int, limit: int) -> str:
    return f"{CACHE_KEY_PREFIX}:{user_id}:{limit}"


# 추천 사유 태그
REASON_POPULAR = "highly popular"
REASON_RECENT = "recently released"
REASON_GENRE_MATCH = "matches your preferred genres"
REASON_DEFAULT = "recommended for you"
REASON_SEPARATOR = ", "

# 릴리스 날짜 형식
RELEASE_DATE_FORMAT = "%Y-%m-%d"

# 점수 반올림 자릿수
SCORE_DECIMAL_PLACES = 4

# 규칙 저장소 초기 시드 (name, weight, rule_type)
DEFAULT_RULES: tuple[tuple[str, float, RuleType], ...] = (
    ("Popularity Score", 0.4, RuleType.POPULARITY),
    ("Recency Bonus", 0.3, RuleType.RECENCY),
    ("Genre Match", 0.3, RuleType.GENRE_MATCH),
)

# 업스트림 소스 이름 (로그/메트릭 라벨)
SOURCE_PREFERENCES = "user-preference-service"
SOURCE_CATALOG = "movie-service"
