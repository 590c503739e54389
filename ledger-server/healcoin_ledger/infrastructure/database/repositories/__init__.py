"""SQLAlchemy-backed repository implementations."""

from .activity_repository import SqlActivityRepository
from .audit_repository import SqlAuditRepository
from .reward_repository import SqlRewardRepository
from .usage_repository import SqlUsageRepository
from .wallet_repository import SqlWalletRepository

__all__ = [
    "SqlActivityRepository",
    "SqlAuditRepository",
    "SqlRewardRepository",
    "SqlUsageRepository",
    "SqlWalletRepository",
]
