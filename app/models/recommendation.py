from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.models.base import Base, TimestampMixin


class RecommendationRule(Base, TimestampMixin):
    """스코어링 규칙 모델"""

    __tablename__ = "recommendation_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False, default=1.0)
    rule_type = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RecommendationRule(id={self.id}, rule_type='{self.rule_type}', "
            f"weight={self.weight}, active={self.is_active})>"
        )


class UserRecommendationSnapshot(Base):
    """사용자별 마지막 추천 점수 스냅샷 모델"""

    __tablename__ = "user_recommendation_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_snapshot_user_movie"),
        Index("idx_recommendations_score", "score"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    movie_id = Column(Integer, nullable=False)
    score = Column(Float, nullable=False)
    generated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<UserRecommendationSnapshot(user_id={self.user_id}, "
            f"movie_id={self.movie_id}, score={self.score})>"
        )
