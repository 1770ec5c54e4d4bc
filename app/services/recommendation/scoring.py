"""
추천 스코어링 엔진 (순수 함수, 상태 없음)

구성 요소별 점수는 모두 0.0 ~ 1.0 범위로 정규화된다:
- popularity: 후보 풀 내 최대 인기도로 나눈 값
- recency: 개봉 후 경과 일수 기준 선형 감쇠 (기본 730일에 0)
- genre_match: 후보 장르 중 선호 장르 비율 (대소문자 무시)

총점은 활성 규칙 가중치를 곱한 구성 요소 점수의 합이며,
소수점 4자리에서 ROUND_HALF_UP(0.5는 0에서 멀어지는 방향)으로 반올림한다.
가중치 합이 1일 필요는 없다. 활성 규칙에 없는 타입은 점수에 기여하지 않는다.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from app.schemas.recommendation import (
    CandidateItem,
    ScoredRecommendation,
    ScoringRule,
    UserPreferenceProfile,
)
from app.services.recommendation.constants import (
    REASON_DEFAULT,
    REASON_GENRE_MATCH,
    REASON_POPULAR,
    REASON_RECENT,
    REASON_SEPARATOR,
    RELEASE_DATE_FORMAT,
    SCORE_DECIMAL_PLACES,
    RuleType,
)

_SCORE_QUANTUM = Decimal(1).scaleb(-SCORE_DECIMAL_PLACES)


def build_rule_weights(rules: Iterable[ScoringRule]) -> dict[str, float]:
    """
    규칙 타입별 가중치 매핑

    같은 타입의 활성 규칙이 여러 개면 마지막에 읽힌 규칙이 적용된다.
    """
    weights: dict[str, float] = {}
    for rule in rules:
        if rule.is_active:
            weights[rule.rule_type] = rule.weight
    return weights


def normalize_popularity(pool: Sequence[CandidateItem]) -> list[float]:
    """
    풀 내 최대 인기도 기준 정규화

    최대값이 0이면 1로 나누어 모든 값이 0이 된다.
    """
    max_popularity = max((item.popularity for item in pool), default=0.0)
    if max_popularity == 0:
        max_popularity = 1.0
    return [item.popularity / max_popularity for item in pool]


def parse_release_date(value: str) -> date | None:
    try:
        return datetime.strptime(value, RELEASE_DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def recency_score(release_date: str, today: date, window_days: int = 730) -> float:
    """
    개봉일 기준 최신성 점수

    Args:
        release_date: 'YYYY-MM-DD' 형식의 개봉일 (파싱 불가 시 0.0)
        today: 기준 날짜
        window_days: 점수가 0이 되는 경과 일수

    Returns:
        max(0, 1 - 경과일수 / window_days), 미래 개봉은 경과 0일로 취급
    """
    released = parse_release_date(release_date)
    if released is None:
        return 0.0

    days_since = max((today - released).days, 0)
    return max(0.0, 1.0 - days_since / window_days)


def genre_match_score(genres: Sequence[str], preferred_genres: frozenset[str]) -> float:
    """후보 장르 중 선호 장르(소문자 집합)에 포함된 비율"""
    if not genres:
        return 0.0
    matches = sum(1 for genre in genres if genre.lower() in preferred_genres)
    return matches / len(genres)


def round_score(value: float) -> float:
    """소수점 4자리 ROUND_HALF_UP 반올림"""
    return float(Decimal(repr(value)).quantize(_SCORE_QUANTUM, rounding=ROUND_HALF_UP))


def score_candidates(
    pool: Sequence[CandidateItem],
    profile: UserPreferenceProfile,
    rules: Iterable[ScoringRule],
    today: date | None = None,
    recency_window_days: int = 730,
    reason_threshold: float = 0.7,
) -> list[ScoredRecommendation]:
    """
    후보 풀 스코어링 (입력 순서 유지, 정렬하지 않음)

    Args:
        pool: 후보 영화 목록
        profile: 사용자 선호 프로필
        rules: 활성 스코어링 규칙
        today: 최신성 계산 기준일 (None이면 오늘 UTC)
        recency_window_days: 최신성 감쇠 기간
        reason_threshold: 인기/최신 사유 태그 임계값

    Returns:
        후보별 점수와 추천 사유
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    weights = build_rule_weights(rules)
    popularity_weight = weights.get(RuleType.POPULARITY.value)
    recency_weight = weights.get(RuleType.RECENCY.value)
    genre_weight = weights.get(RuleType.GENRE_MATCH.value)

    preferred = profile.genre_set
    normalized = normalize_popularity(pool)

    results: list[ScoredRecommendation] = []
    for item, popularity in zip(pool, normalized, strict=True):
        total = 0.0
        reasons: list[str] = []

        if popularity_weight is not None:
            total += popularity * popularity_weight
            if popularity > reason_threshold:
                reasons.append(REASON_POPULAR)

        if recency_weight is not None:
            recency = recency_score(item.release_date, today, recency_window_days)
            total += recency * recency_weight
            if recency > reason_threshold:
                reasons.append(REASON_RECENT)

        # 선호 장르가 없으면 장르 매칭은 평가하지 않음
        if genre_weight is not None and preferred:
            genre_match = genre_match_score(item.genres, preferred)
            total += genre_match * genre_weight
            if genre_match > 0:
                reasons.append(REASON_GENRE_MATCH)

        results.append(
            ScoredRecommendation(
                id=item.id,
                title=item.title,
                release_date=item.release_date,
                genres=list(item.genres),
                popularity=item.popularity,
                poster_url=item.poster_url,
                score=round_score(total),
                reason=REASON_SEPARATOR.join(reasons) if reasons else REASON_DEFAULT,
            )
        )

    return results


def rank_recommendations(
    scored: Iterable[ScoredRecommendation], limit: int
) -> list[ScoredRecommendation]:
    """
    점수 내림차순 정렬 후 상위 limit개 반환

    sorted()는 안정 정렬이므로(reverse=True 포함) 동점 항목은 입력 순서를 유지한다.
    """
    ranked = sorted(scored, key=lambda rec: rec.score, reverse=True)
    return ranked[:limit]
