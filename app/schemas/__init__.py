"""Schemas package"""

from .rewards import (
    ActionResult,
    ExternalIdentity,
    ReferralTier,
    MembershipStatus,
    TweetStatus,
    MetadataOutcome,
    TweetMetadata,
    MembershipCheck,
    SweepSummary,
)

__all__ = [
    "ActionResult",
    "ExternalIdentity",
    "ReferralTier",
    "MembershipStatus",
    "TweetStatus",
    "MetadataOutcome",
    "TweetMetadata",
    "MembershipCheck",
    "SweepSummary",
]
