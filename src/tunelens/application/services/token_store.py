"""Database-backed token store.

Hey future me - we take the session_scope context manager FACTORY, not a session. Every
store call opens its own short transaction, so the long-lived poll loops and renewal
timers never hold a connection between ticks.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from tunelens.domain.entities import Session
from tunelens.domain.ports import ITokenStore
from tunelens.infrastructure.observability import short_id
from tunelens.infrastructure.persistence.repositories import SessionRepository

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DatabaseTokenStore(ITokenStore):
    """Token Store contract over SessionRepository, one transaction per call."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    async def get(self, session_id: str) -> Session | None:
        async with self._session_scope() as db_session:
            return await SessionRepository(db_session).get(session_id)

    async def put(self, session: Session) -> None:
        async with self._session_scope() as db_session:
            await SessionRepository(db_session).upsert(session)
        logger.debug("Stored session %s", short_id(session.session_id))

    async def delete(self, session_id: str) -> bool:
        async with self._session_scope() as db_session:
            deleted = await SessionRepository(db_session).delete(session_id)
        if deleted:
            logger.info("Deleted session %s", short_id(session_id))
        return deleted

    async def list_all(self) -> list[Session]:
        async with self._session_scope() as db_session:
            return await SessionRepository(db_session).list_all()


__all__ = ["DatabaseTokenStore", "SessionScope"]
