from app.services.recommendation.repositories.rule_repository import RuleRepository
from app.services.recommendation.repositories.snapshot_repository import SnapshotRepository

__all__ = [
    "RuleRepository",
    "SnapshotRepository",
]
