"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, inspect
from sqlalchemy.orm import DeclarativeBase, declared_attr
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

# Create declarative base
class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            onupdate=utc_now
        )

class SerializableModel:
    """Mixin with column-level conversion helpers"""

    @classmethod
    def column_keys(cls) -> List[str]:
        """Mapped attribute names (may differ from column names)"""
        return [attr.key for attr in inspect(cls).column_attrs]

    def to_dict(self, exclude: Optional[list] = None) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        exclude = exclude or []
        result = {}

        for key in self.column_keys():
            if key not in exclude:
                value = getattr(self, key)

                if isinstance(value, datetime):
                    value = value.isoformat()

                result[key] = value

        return result

    def copy(self):
        """Detached copy carrying the same column values"""
        return self.__class__(**{key: getattr(self, key) for key in self.column_keys()})

    def __repr__(self):
        """String representation"""
        class_name = self.__class__.__name__
        attributes = []

        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.key)
            attributes.append(f"{column.key}={value!r}")

        return f"<{class_name}({', '.join(attributes)})>"

__all__ = [
    'Base',
    'TimestampedModel',
    'SerializableModel',
    'utc_now',
]
