"""
User profile model.

Keyed by the Supabase auth user id rather than a generated integer.
"""

from sqlalchemy import Column, String

from superapp.core.database import Base
from superapp.shared.models.base import TimestampMixin


class UserProfile(Base, TimestampMixin):
    """Profile row created the first time a signed-in user is seen."""

    __tablename__ = "user_profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True)
