import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.recommendation import RecommendationRule
from app.services.recommendation.constants import DEFAULT_RULES

logger = logging.getLogger(__name__)


class RuleRepository:
    """스코어링 규칙 데이터 접근 객체"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_rules(self) -> list[RecommendationRule]:
        """활성 규칙 조회 (rule_type, id 순)"""
        result = await self.db.execute(
            select(RecommendationRule)
            .where(RecommendationRule.is_active.is_(True))
            .order_by(RecommendationRule.rule_type, RecommendationRule.id)
        )
        return list(result.scalars().all())

    async def seed_default_rules(self) -> int:
        """
        기본 규칙 시드

        규칙 타입별로 행이 하나도 없을 때만 기본 규칙을 추가한다.

        Returns:
            추가된 규칙 수
        """
        result = await self.db.execute(select(RecommendationRule.rule_type).distinct())
        existing_types = {row[0] for row in result}

        created = 0
        for name, weight, rule_type in DEFAULT_RULES:
            if rule_type.value in existing_types:
                continue
            self.db.add(RecommendationRule(name=name, weight=weight, rule_type=rule_type.value))
            created += 1

        if created:
            await self.db.commit()
            logger.info(f"Seeded {created} default recommendation rules")

        return created
