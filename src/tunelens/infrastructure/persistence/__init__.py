"""Infrastructure persistence layer."""

from .database import Database
from .models import Base, SessionModel
from .repositories import SessionRepository

__all__ = [
    "Base",
    "Database",
    "SessionModel",
    "SessionRepository",
]
