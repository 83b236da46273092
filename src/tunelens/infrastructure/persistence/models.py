"""SQLAlchemy ORM models for TuneLens."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import BigInteger, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive, attach UTC
# before comparing them with timezone-aware values.
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, this is the ONLY durable state of the backend. expires_at is a BigInteger of
# epoch MILLISECONDS (not a DateTime) - all token math happens in ms and the boot-time timer
# reconstruction reads it straight back. Tokens are NOT NULL: a row only exists after a
# successful code exchange.
class SessionModel(Base):
    """Spotify OAuth session (token pair + expiry) surviving process restarts."""

    __tablename__ = "sessions"

    # Primary key: opaque urlsafe random string handed to the frontend
    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # OAuth tokens (SENSITIVE - consider encrypting in production)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("ix_sessions_expires_at", "expires_at"),)
    # Fetch server defaults (created_at) right after INSERT, async sessions can't lazy load
    __mapper_args__ = {"eager_defaults": True}
