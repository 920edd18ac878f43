"""Shared database models."""

from superapp.shared.models.base import BaseModel, SoftDeleteMixin, TimestampMixin

__all__ = [
    "BaseModel",
    "SoftDeleteMixin",
    "TimestampMixin",
]
