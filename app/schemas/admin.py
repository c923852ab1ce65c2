"""Admin dashboard schemas"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional

class AdminStats(BaseModel):
    total_users: int = 0
    total_points_distributed: int = 0
    x_connected_users: int = 0
    discord_connected_users: int = 0
    daily_active_users: int = 0

class ReferralAdminStats(BaseModel):
    total_referrals: int = 0
    claimed_referrals: int = 0
    pending_referrals: int = 0
    active_referrers: int = 0
    tier_distribution: Dict[str, int] = Field(default_factory=dict)

class DailyCount(BaseModel):
    date: str
    count: int

class MonthlyCount(BaseModel):
    month: str
    count: int

class ActivitySeries(BaseModel):
    users: List[DailyCount] = Field(default_factory=list)
    tasks: List[DailyCount] = Field(default_factory=list)

class MonthlyActivitySeries(BaseModel):
    users: List[MonthlyCount] = Field(default_factory=list)
    tasks: List[MonthlyCount] = Field(default_factory=list)

class ActivityData(BaseModel):
    daily: ActivitySeries = Field(default_factory=ActivitySeries)
    monthly: MonthlyActivitySeries = Field(default_factory=MonthlyActivitySeries)
    total_users: int = 0
    total_task_completions: int = 0

class AdjustPointsRequest(BaseModel):
    wallet_address: str = Field(..., min_length=1, max_length=128)
    points_change: int
    reason: str = Field(..., min_length=1, max_length=500)

class DailyPostEntry(BaseModel):
    id: int
    wallet_address: str
    task_type: str
    points_awarded: int
    completion_date: Optional[str] = None
    status: str
    completed_at: Optional[str] = None
    revoked_at: Optional[str] = None
    x_username: Optional[str] = None
    tweet_url: Optional[str] = None
    metadata_malformed: bool = False
