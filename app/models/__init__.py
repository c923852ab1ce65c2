"""Models package initialization"""

from .base import Base, utc_now
from .wallet_profile import WalletProfile, ChainType, Platform
from .points_history import PointsHistory, TransactionType
from .task_completion import TaskCompletion, TaskType, CompletionStatus
from .referral import Referral

__all__ = [
    "Base",
    "utc_now",
    "WalletProfile",
    "ChainType",
    "Platform",
    "PointsHistory",
    "TransactionType",
    "TaskCompletion",
    "TaskType",
    "CompletionStatus",
    "Referral",
]
