"""Rewards, referral and reconciliation schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
import enum

from app.core.exceptions import ErrorCode
from app.models import ChainType

class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    class Config:
        from_attributes = True
        use_enum_values = True

class ActionResult(BaseSchema):
    """
    Outcome of a ledger mutation

    Business rejections are reported here instead of raised, so callers can
    tell "nothing happened" apart from a failure of the store itself.
    """

    success: bool
    message: str
    error_code: Optional[ErrorCode] = None
    points: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, points: Optional[int] = None, **data: Any) -> "ActionResult":
        return cls(success=True, message=message, points=points, data=data)

    @classmethod
    def fail(cls, error_code: ErrorCode, message: str, **data: Any) -> "ActionResult":
        return cls(success=False, message=message, error_code=error_code, data=data)

class ExternalIdentity(BaseSchema):
    """Identity returned by the platform's OAuth flow"""

    username: str = Field(..., min_length=1, max_length=64)
    external_id: Optional[str] = Field(None, max_length=64)

class ReferralTier(BaseSchema):
    name: str
    min_referrals: int
    bonus_per_referral: int
    percentage_bonus: int
    color: str

class MembershipStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    INDETERMINATE = "indeterminate"

class TweetStatus(str, enum.Enum):
    EXISTS = "exists"
    DELETED = "deleted"
    INDETERMINATE = "indeterminate"

class MetadataOutcome(str, enum.Enum):
    OK = "ok"
    MISSING = "missing"
    MALFORMED = "malformed"

class TweetMetadata(BaseSchema):
    outcome: MetadataOutcome
    tweet_url: Optional[str] = None

class MembershipCheck(BaseSchema):
    still_member: bool = True
    revoked: bool = False

class SweepSummary(BaseSchema):
    checked: int = 0
    revoked: int = 0
    errors: int = 0
    skipped: int = 0
    revoked_ids: List[int] = Field(default_factory=list)
    timed_out: bool = False

# Request bodies

class WalletRequest(BaseSchema):
    wallet_address: str = Field(..., min_length=1, max_length=128)

    @field_validator("wallet_address")
    @classmethod
    def strip_wallet(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("wallet_address must not be blank")
        return v

class ProfileRequest(WalletRequest):
    chain_type: Optional[ChainType] = None

class ConnectXRequest(WalletRequest):
    x_username: str = Field(..., min_length=1, max_length=64)
    x_user_id: Optional[str] = Field(None, max_length=64)

class ConnectDiscordRequest(WalletRequest):
    discord_username: str = Field(..., min_length=1, max_length=64)
    discord_id: Optional[str] = Field(None, max_length=64)

class DailyPostRequest(WalletRequest):
    tweet_url: Optional[str] = Field(None, max_length=512)

class ApplyReferralRequest(WalletRequest):
    referral_code: str = Field(..., min_length=1, max_length=16)

class ClaimReferralRequest(BaseSchema):
    referred_wallet: str = Field(..., min_length=1, max_length=128)
