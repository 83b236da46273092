"""Tests for the /ws/playback WebSocket.

Hey future me - TestClient runs the app on its own event loop in a worker thread, so these
tests are plain sync functions. Intervals are huge: the only frames we see are the ones
our own messages trigger.
"""

from unittest.mock import AsyncMock

import pytest
from conftest import FakeClock, InMemoryTokenStore
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tunelens.api.main import create_app
from tunelens.application.services.playback_sync import SyncServer
from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.config import Settings
from tunelens.domain.entities import Session


@pytest.fixture
def sync_server(
    spotify_client: AsyncMock, token_store: InMemoryTokenStore, clock: FakeClock
) -> SyncServer:
    scheduler = TokenRefreshScheduler(spotify_client, token_store, clock=clock)
    return SyncServer(
        spotify_client, scheduler, token_store, poll_interval=3600, emit_interval=3600, clock=clock
    )


@pytest.fixture
def app(settings: Settings, sync_server: SyncServer) -> FastAPI:
    app = create_app(settings)
    app.state.sync_server = sync_server
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestPlaybackSocket:
    """Test the JSON frame protocol."""

    def test_start_primes_and_stop(
        self, client: TestClient, sync_server: SyncServer, session: Session
    ) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_json({"event": "start-playback-sync", "data": {"session": session.session_id}})
            assert ws.receive_json() == {"event": "playback-update", "data": {"isPlaying": False}}
            assert sync_server.listener_count == 1

            ws.send_json({"event": "stop-playback-sync"})
            # Round trip an error frame so the stop has certainly been handled
            ws.send_json({"event": "bogus"})
            assert ws.receive_json() == {"event": "error", "data": {"message": "Unknown event: bogus"}}
            assert sync_server.listener_count == 0

    def test_start_without_session(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_json({"event": "start-playback-sync", "data": {}})
            assert ws.receive_json() == {"event": "error", "data": {"message": "No session provided"}}

    def test_start_with_unknown_session(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_json({"event": "start-playback-sync", "data": {"session": "nope"}})
            assert ws.receive_json() == {"event": "error", "data": {"message": "Invalid session"}}

    def test_invalid_json_keeps_socket_open(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"event": "error", "data": {"message": "Invalid message"}}
            ws.send_json(["not", "an", "object"])
            assert ws.receive_json() == {"event": "error", "data": {"message": "Invalid message"}}

    def test_stop_without_start_is_harmless(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_json({"event": "stop-playback-sync"})
            ws.send_json({"event": "stop-playback-sync"})
            ws.send_json({"event": "ping"})
            assert ws.receive_json()["event"] == "error"

    def test_disconnect_stops_listener(
        self, client: TestClient, sync_server: SyncServer, session: Session
    ) -> None:
        with client.websocket_connect("/ws/playback") as ws:
            ws.send_json({"event": "start-playback-sync", "data": {"session": session.session_id}})
            ws.receive_json()
            assert sync_server.listener_count == 1

        assert sync_server.listener_count == 0
