"""
Wallet profile model
One rewards identity per wallet address
"""

from sqlalchemy import Column, String, Boolean, Integer, DateTime
import enum

from .base import Base, TimestampedModel, SerializableModel

class ChainType(str, enum.Enum):
    EVM = "evm"
    TRON = "tron"
    SOLANA = "solana"

class Platform(str, enum.Enum):
    X = "x"
    DISCORD = "discord"

class WalletProfile(Base, TimestampedModel, SerializableModel):
    """Rewards profile keyed by lower-cased wallet address"""

    __tablename__ = "wallet_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), unique=True, nullable=False, index=True)
    chain_type = Column(String(16), nullable=False, default=ChainType.EVM.value)

    # Points
    total_points = Column(Integer, nullable=False, default=0)
    connect_bonus_claimed = Column(Boolean, nullable=False, default=False)

    # X (Twitter)
    x_connected = Column(Boolean, nullable=False, default=False)
    x_username = Column(String(64))
    x_user_id = Column(String(64))
    x_connected_at = Column(DateTime(timezone=True))

    # Discord
    discord_connected = Column(Boolean, nullable=False, default=False)
    discord_username = Column(String(64))
    discord_id = Column(String(64))
    discord_connected_at = Column(DateTime(timezone=True))
    discord_verified = Column(Boolean, nullable=False, default=False, index=True)
    discord_verified_at = Column(DateTime(timezone=True))

    # Referrals
    referral_code = Column(String(16), unique=True, nullable=True)
    referred_by = Column(String(16), nullable=True)
    referral_count = Column(Integer, nullable=False, default=0)
    referral_points_earned = Column(Integer, nullable=False, default=0)

    @property
    def is_referral_eligible(self) -> bool:
        """X connected, Discord connected and Discord server verified"""
        return bool(self.x_connected and self.discord_connected and self.discord_verified)

    def is_connected(self, platform: Platform) -> bool:
        if platform == Platform.X:
            return bool(self.x_connected)
        return bool(self.discord_connected)
