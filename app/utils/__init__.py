"""Utilities package"""

from .helpers import (
    normalize_wallet,
    detect_chain_type,
    utc_date_string,
    generate_referral_code,
    normalize_referral_code,
    short_wallet,
)
from .pagination import PaginationParams, PaginatedResponse

__all__ = [
    "normalize_wallet",
    "detect_chain_type",
    "utc_date_string",
    "generate_referral_code",
    "normalize_referral_code",
    "short_wallet",
    "PaginationParams",
    "PaginatedResponse",
]
