"""Repository implementations."""

from typing import cast

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tunelens.domain.entities import Session
from tunelens.domain.ports import ISessionRepository
from tunelens.infrastructure.persistence.models import SessionModel, ensure_utc_aware


def _to_entity(model: SessionModel) -> Session:
    return Session(
        session_id=model.session_id,
        access_token=model.access_token,
        refresh_token=model.refresh_token,
        expires_at=int(model.expires_at),
        created_at=ensure_utc_aware(model.created_at) if model.created_at else None,
    )


class SessionRepository(ISessionRepository):
    """Repository for session persistence.

    Handles database operations for OAuth sessions, enabling persistence across
    application restarts. Commit/rollback belongs to the caller (session_scope).
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def _get_model(self, session_id: str) -> SessionModel | None:
        stmt = select(SessionModel).where(SessionModel.session_id == session_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, session_id: str) -> Session | None:
        """Get session by ID.

        Returns:
            Session dataclass or None if not found
        """
        model = await self._get_model(session_id)
        if not model:
            return None
        return _to_entity(model)

    # Yo, upsert() is INSERT OR REPLACE semantics: one live row per session_id, the newest
    # token pair always wins. created_at is only set by the server default on first insert.
    async def upsert(self, session: Session) -> None:
        """Insert a session or overwrite tokens/expiry of the existing row."""
        model = await self._get_model(session.session_id)
        if model is None:
            model = SessionModel(
                session_id=session.session_id,
                access_token=session.access_token,
                refresh_token=session.refresh_token,
                expires_at=session.expires_at,
            )
            if session.created_at is not None:
                model.created_at = session.created_at
            self.session.add(model)
        else:
            model.access_token = session.access_token
            model.refresh_token = session.refresh_token
            model.expires_at = session.expires_at
        await self.session.flush()

    async def update_tokens(
        self,
        session_id: str,
        access_token: str,
        expires_at: int,
        refresh_token: str | None = None,
    ) -> Session | None:
        """Overwrite the access token and expiry after a refresh.

        The refresh token is only replaced when upstream issued a new one.

        Returns:
            Updated session or None if not found
        """
        model = await self._get_model(session_id)
        if not model:
            return None

        model.access_token = access_token
        model.expires_at = expires_at
        if refresh_token:
            model.refresh_token = refresh_token
        await self.session.flush()
        return _to_entity(model)

    # Idempotent: deleting an unknown id is not an error (logout/expiry races are normal)
    async def delete(self, session_id: str) -> bool:
        """Delete session from database.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(SessionModel).where(SessionModel.session_id == session_id)
        result = await self.session.execute(stmt)
        rowcount = cast(int, result.rowcount)  # type: ignore[attr-defined]
        return bool(rowcount > 0)

    async def list_all(self) -> list[Session]:
        """All persisted sessions, oldest first."""
        stmt = select(SessionModel).order_by(SessionModel.created_at)
        result = await self.session.execute(stmt)
        return [_to_entity(model) for model in result.scalars().all()]


__all__ = ["SessionRepository"]
