"""Core application components."""

from superapp.core.config import settings
from superapp.core.database import Base, get_db, engine

__all__ = ["settings", "Base", "get_db", "engine"]
