"""Task completion models"""

from sqlalchemy import Column, String, Integer, Text, DateTime, Index, text
import enum

from .base import Base, SerializableModel, utc_now

class TaskType(str, enum.Enum):
    DAILY_POST = "daily_post"

class CompletionStatus(str, enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"

class TaskCompletion(Base, SerializableModel):
    """One row per completed task instance"""

    __tablename__ = "task_completions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(128), nullable=False, index=True)
    task_type = Column(String(64), nullable=False)
    points_awarded = Column(Integer, nullable=False)
    completion_date = Column(String(10))  # UTC YYYY-MM-DD, daily tasks only
    metadata_json = Column("metadata", Text)
    status = Column(String(16), nullable=False, default=CompletionStatus.ACTIVE.value)
    completed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    revoked_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_task_completions_lookup", "wallet_address", "task_type", "completion_date", "status"),
        # One active completion per wallet, task and day
        Index(
            "uq_task_completions_active_daily",
            "wallet_address",
            "task_type",
            "completion_date",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == CompletionStatus.ACTIVE.value
