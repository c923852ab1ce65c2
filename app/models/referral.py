"""Referral system models"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime

from .base import Base, SerializableModel, utc_now

class Referral(Base, SerializableModel):
    """Referral edge between a referrer and the wallet that used their code"""

    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    referrer_wallet = Column(String(128), nullable=False, index=True)
    referred_wallet = Column(String(128), nullable=False, unique=True)
    referral_code = Column(String(16), nullable=False)
    referrer_points = Column(Integer, nullable=False, default=0)
    referred_points = Column(Integer, nullable=False, default=0)
    referrer_claimed = Column(Boolean, nullable=False, default=False)
    referred_claimed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    claimed_at = Column(DateTime(timezone=True))

    @property
    def is_claimed(self) -> bool:
        return bool(self.referrer_claimed)
