"""Services package"""

from .points import PointsEngine
from .verification import DiscordMembershipClient, TweetExistenceClient
from .referral import ReferralService, REFERRAL_TIERS, tier_of
from .connections import ConnectionService
from .tasks import TaskService, parse_tweet_metadata
from .reconciliation import ReconciliationService
from .admin import AdminService

__all__ = [
    "PointsEngine",
    "DiscordMembershipClient",
    "TweetExistenceClient",
    "ReferralService",
    "REFERRAL_TIERS",
    "tier_of",
    "ConnectionService",
    "TaskService",
    "parse_tweet_metadata",
    "ReconciliationService",
    "AdminService",
]
