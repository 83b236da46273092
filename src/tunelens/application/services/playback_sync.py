"""Playback Sync Server - live "now playing" for every connected dashboard.

Hey future me - this multiplexes N WebSocket connections onto the rate-limited
currently-playing endpoint. Per connection we run an ActiveListener with TWO tasks:

- poll task (slow, poll_interval ~5s): ensure_fresh + GET currently-playing, writes the
  result into the session-keyed snapshot cache
- emit task (fast, emit_interval ~1s): reads the session's cached snapshot, interpolates
  progress (progress + time since capture, clamped to duration) and pushes it

So the progress bar moves every second while Spotify only sees one request per 5s per
listener. Several tabs of the same session share ONE cached snapshot (last completed poll
wins), but every tab keeps its own listener - closing one tab never touches another.

Poll outcome classes:
- unauthorized      -> error {message, needsReauth} to the client, listener stopped, session
                       deleted. The ONLY fatal path, never retried.
- rate limited      -> nothing changes, clients keep getting interpolated cached data
- transient failure -> logged, previous snapshot kept (token endpoint outages included)
- nothing playing   -> snapshot {isPlaying: false}

Nothing escapes poll_once(), an unexpected error counts as a transient failure.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.domain.entities import PlaybackSnapshot, now_ms
from tunelens.domain.exceptions import (
    ExternalServiceError,
    RateLimitExceededError,
    SessionExpiredError,
)
from tunelens.domain.ports import ITokenStore
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.observability import short_id

logger = logging.getLogger(__name__)

PLAYBACK_UPDATE_EVENT = "playback-update"
ERROR_EVENT = "error"

# (event name, payload) -> sends one frame to the client
EmitFn = Callable[[str, dict[str, Any]], Awaitable[None]]


class ListenerState(str, Enum):
    """Lifecycle of an ActiveListener."""

    IDLE = "idle"
    POLLING = "polling"
    EMITTING = "emitting"
    ERROR = "error"
    STOPPED = "stopped"


class PollOutcome(str, Enum):
    """Classified result of one poll."""

    UPDATED = "updated"
    NOT_PLAYING = "not_playing"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    UNAUTHORIZED = "unauthorized"


@dataclass
class ActiveListener:
    """Runtime state of ONE connection's playback sync. Never shared."""

    connection_id: str
    session_id: str
    emit: EmitFn
    state: ListenerState = ListenerState.IDLE
    poll_task: asyncio.Task[None] | None = None
    emit_task: asyncio.Task[None] | None = None

    @property
    def stopped(self) -> bool:
        return self.state is ListenerState.STOPPED

    def transition(self, state: ListenerState) -> None:
        # STOPPED is terminal
        if not self.stopped:
            self.state = state

    def tasks(self) -> list[asyncio.Task[None]]:
        return [task for task in (self.poll_task, self.emit_task) if task is not None]


class SyncServer:
    """Owns every ActiveListener and the per-session snapshot cache."""

    def __init__(
        self,
        client: SpotifyClient,
        scheduler: TokenRefreshScheduler,
        token_store: ITokenStore,
        poll_interval: float = 5.0,
        emit_interval: float = 1.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._client = client
        self._scheduler = scheduler
        self._token_store = token_store
        self.poll_interval = poll_interval
        self.emit_interval = emit_interval
        self._clock = clock
        self._listeners: dict[str, ActiveListener] = {}
        self._snapshots: dict[str, PlaybackSnapshot] = {}

    # Inspection

    def get_listener(self, connection_id: str) -> ActiveListener | None:
        return self._listeners.get(connection_id)

    def get_snapshot(self, session_id: str) -> PlaybackSnapshot | None:
        return self._snapshots.get(session_id)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # Interpolation

    @staticmethod
    def project(snapshot: PlaybackSnapshot, now: int) -> PlaybackSnapshot:
        """Interpolate a cached snapshot to `now`.

        Playing with known progress: progress + (now - captured), clamped to
        [0, duration], flagged estimated and re-stamped. Anything else is returned as is.
        Always project from the CACHED snapshot, never from an earlier projection.
        """
        if not snapshot.is_playing or snapshot.progress is None:
            return snapshot

        estimated = snapshot.progress + max(0, now - snapshot.timestamp)
        if snapshot.duration is not None:
            estimated = min(estimated, snapshot.duration)
        return replace(snapshot, progress=max(0, estimated), timestamp=now, estimated=True)

    # Subscribe / unsubscribe

    async def start(self, connection_id: str, session_id: str | None, emit: EmitFn) -> bool:
        """Subscribe a connection to playback updates of a session.

        Replaces any listener the connection already has. Primes the client right away
        (cached projection, or the first poll inline) before the tasks start ticking.

        Returns:
            True if the listener is running
        """
        if not session_id:
            await emit(ERROR_EVENT, {"message": "No session provided"})
            return False

        if await self._token_store.get(session_id) is None:
            await emit(ERROR_EVENT, {"message": "Invalid session"})
            return False

        await self.stop(connection_id)

        listener = ActiveListener(connection_id=connection_id, session_id=session_id, emit=emit)
        self._listeners[connection_id] = listener
        logger.info(
            "Playback sync started: connection=%s session=%s",
            connection_id,
            short_id(session_id),
        )

        cached = self._snapshots.get(session_id)
        if cached is not None:
            projected = self.project(cached, self._clock())
            await self._send(listener, PLAYBACK_UPDATE_EVENT, projected.to_dict())
        else:
            outcome = await self.poll_once(listener)
            snapshot = self._snapshots.get(session_id)
            if outcome in (PollOutcome.UPDATED, PollOutcome.NOT_PLAYING) and snapshot is not None:
                await self._send(listener, PLAYBACK_UPDATE_EVENT, snapshot.to_dict())

        # Stopped while priming (unauthorized, disconnect, replaced by a newer start)
        if listener.stopped or self._listeners.get(connection_id) is not listener:
            return False

        listener.poll_task = asyncio.create_task(
            self._poll_loop(listener), name=f"playback-poll-{connection_id}"
        )
        listener.emit_task = asyncio.create_task(
            self._emit_loop(listener), name=f"playback-emit-{connection_id}"
        )
        return True

    async def stop(self, connection_id: str) -> bool:
        """Stop a connection's listener. Idempotent, unknown ids are fine.

        Returns:
            True if a listener was running
        """
        listener = self._listeners.pop(connection_id, None)
        if listener is None:
            return False

        listener.state = ListenerState.STOPPED
        current = asyncio.current_task()
        pending = [task for task in listener.tasks() if task is not current]
        for task in pending:
            task.cancel()
        for task in pending:
            with suppress(asyncio.CancelledError):
                await task

        logger.info(
            "Playback sync stopped: connection=%s session=%s",
            connection_id,
            short_id(listener.session_id),
        )
        return True

    async def _stop_listener(self, listener: ActiveListener) -> None:
        # Only if the connection still maps to THIS listener, a newer start may own it now
        if self._listeners.get(listener.connection_id) is listener:
            await self.stop(listener.connection_id)
        listener.state = ListenerState.STOPPED

    async def shutdown(self) -> None:
        """Stop every listener (app shutdown)."""
        for connection_id in list(self._listeners):
            await self.stop(connection_id)
        self._snapshots.clear()

    # Poll path - sole writer of self._snapshots

    async def poll_once(self, listener: ActiveListener) -> PollOutcome:
        """Fetch playback for the listener's session and update the shared snapshot."""
        listener.transition(ListenerState.POLLING)
        session_id = listener.session_id

        try:
            session = await self._scheduler.ensure_fresh(session_id)
            data = await self._client.get_currently_playing(session.access_token)
        except SessionExpiredError:
            logger.info("Session %s unauthorized, stopping playback sync", short_id(session_id))
            await self._handle_unauthorized(listener)
            return PollOutcome.UNAUTHORIZED
        except RateLimitExceededError:
            logger.warning(
                "Rate limited polling session %s, serving cached snapshot", short_id(session_id)
            )
            listener.transition(ListenerState.EMITTING)
            return PollOutcome.RATE_LIMITED
        except ExternalServiceError as e:
            logger.warning("Playback poll failed for session %s: %s", short_id(session_id), e)
            listener.transition(ListenerState.ERROR)
            return PollOutcome.TRANSIENT
        except Exception:
            # Anything else is a bug, but one bad poll must not kill the loop
            logger.exception(
                "Unexpected playback poll failure for session %s", short_id(session_id)
            )
            listener.transition(ListenerState.ERROR)
            return PollOutcome.TRANSIENT

        now = self._clock()

        if not data or not data.get("item"):
            snapshot = PlaybackSnapshot.not_playing(now)
            outcome = PollOutcome.NOT_PLAYING
        else:
            try:
                snapshot = PlaybackSnapshot.from_currently_playing(data, now)
            except (AttributeError, TypeError, ValueError):
                logger.exception(
                    "Malformed currently-playing payload for session %s", short_id(session_id)
                )
                listener.transition(ListenerState.ERROR)
                return PollOutcome.TRANSIENT
            outcome = PollOutcome.UPDATED

        listener.transition(ListenerState.EMITTING)
        self._snapshots[session_id] = snapshot
        return outcome

    async def _handle_unauthorized(self, listener: ActiveListener) -> None:
        await self._send(
            listener,
            ERROR_EVENT,
            {"message": "Session expired", "needsReauth": True},
        )
        await self._stop_listener(listener)

        self._snapshots.pop(listener.session_id, None)
        self._scheduler.cancel(listener.session_id)
        await self._token_store.delete(listener.session_id)

    # Loops

    async def _poll_loop(self, listener: ActiveListener) -> None:
        while not listener.stopped:
            await asyncio.sleep(self.poll_interval)
            if listener.stopped:
                break
            await self.poll_once(listener)

    async def _emit_loop(self, listener: ActiveListener) -> None:
        while not listener.stopped:
            await asyncio.sleep(self.emit_interval)
            if listener.stopped:
                break
            snapshot = self._snapshots.get(listener.session_id)
            if snapshot is None:
                continue
            await self._send(
                listener, PLAYBACK_UPDATE_EVENT, self.project(snapshot, self._clock()).to_dict()
            )

    async def _send(self, listener: ActiveListener, event: str, payload: dict[str, Any]) -> None:
        # A dead socket ends the listener, the router's disconnect handling does the rest
        try:
            await listener.emit(event, payload)
        except Exception as e:
            logger.debug("Emit to connection %s failed: %s", listener.connection_id, e)
            await self._stop_listener(listener)


__all__ = [
    "ActiveListener",
    "EmitFn",
    "ListenerState",
    "PollOutcome",
    "SyncServer",
]
