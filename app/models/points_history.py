"""Points history ledger"""

from sqlalchemy import Column, String, Integer, Text, DateTime
import enum

from .base import Base, SerializableModel, utc_now

class TransactionType(str, enum.Enum):
    CONNECT_BONUS = "connect_bonus"
    X_CONNECT = "x_connect"
    X_DISCONNECT = "x_disconnect"
    DISCORD_CONNECT = "discord_connect"
    DISCORD_DISCONNECT = "discord_disconnect"
    DISCORD_VERIFY = "discord_verify"
    DISCORD_VERIFY_REVOKED = "discord_verify_revoked"
    DAILY_POST = "daily_post"
    TASK_REVOKED = "task_revoked"
    REFERRAL_BONUS = "referral_bonus"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    OTHER = "other"

class PointsHistory(Base, SerializableModel):
    """Append-only record of every balance change"""

    __tablename__ = "points_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), nullable=False, index=True)
    transaction_type = Column(String(32), nullable=False, index=True)
    points_change = Column(Integer, nullable=False)  # Positive for earned, negative for deducted
    balance_after = Column(Integer, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
