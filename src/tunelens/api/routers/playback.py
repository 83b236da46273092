"""Playback sync WebSocket.

Hey future me - the wire protocol is tiny JSON frames, {"event": ..., "data": ...}:

client -> server
    {"event": "start-playback-sync", "data": {"session": "<session id>"}}
    {"event": "stop-playback-sync"}

server -> client
    {"event": "playback-update", "data": {...snapshot...}}
    {"event": "error", "data": {"message": "...", "needsReauth": true?}}

The socket handler only translates frames; all the state lives in SyncServer. Closing
the socket (or any receive error) stops this connection's listener and nothing else.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, cast

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tunelens.api.dependencies import get_state_service
from tunelens.application.services.playback_sync import ERROR_EVENT, SyncServer
from tunelens.infrastructure.observability import set_correlation_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playback"])

START_EVENT = "start-playback-sync"
STOP_EVENT = "stop-playback-sync"


@router.websocket("/ws/playback")
async def playback_socket(websocket: WebSocket) -> None:
    """Bidirectional playback sync channel, one ActiveListener per connection."""
    sync_server = cast(SyncServer, get_state_service(websocket.app.state, "sync_server"))
    await websocket.accept()

    connection_id = uuid.uuid4().hex
    set_correlation_id(connection_id)
    logger.info("Client connected: %s", connection_id)

    # Poll task, emit task and this handler all write to the same socket
    send_lock = asyncio.Lock()

    async def emit(event: str, payload: dict[str, Any]) -> None:
        async with send_lock:
            await websocket.send_json({"event": event, "data": payload})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            if not isinstance(message, dict):
                await emit(ERROR_EVENT, {"message": "Invalid message"})
                continue

            event = message.get("event")
            data = message.get("data") or {}

            if event == START_EVENT:
                session_id = data.get("session") if isinstance(data, dict) else None
                await sync_server.start(connection_id, session_id, emit)
            elif event == STOP_EVENT:
                await sync_server.stop(connection_id)
            else:
                await emit(ERROR_EVENT, {"message": f"Unknown event: {event}"})
    except WebSocketDisconnect:
        logger.info("Client disconnected: %s", connection_id)
    finally:
        await sync_server.stop(connection_id)
