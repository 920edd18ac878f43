"""
Base model classes and mixins for all database models.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, DateTime
from sqlalchemy.orm import declared_attr

from superapp.core.database import Base


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SoftDeleteMixin:
    """
    Mixin for records that are retired instead of deleted.

    Store queries always filter on is_active; rows are never removed.
    """

    is_active = Column(Boolean, default=True, nullable=False)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = datetime.utcnow()


class BaseModel(Base, TimestampMixin):
    """Base model with common fields for all entities."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    @declared_attr
    def __tablename__(cls) -> str:
        """Auto-generate table name from class name."""
        # Convert CamelCase to snake_case
        name = cls.__name__
        return ''.join(['_' + c.lower() if c.isupper() else c for c in name]).lstrip('_')
