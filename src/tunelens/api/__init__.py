"""API module for TuneLens.

Structure:
- main.py: create_app() factory and uvicorn entry point
- routers/: HTTP endpoints (status, auth, dashboard, lyrics) and the playback WebSocket
- schemas.py: Pydantic response models
- dependencies.py: Dependency injection (services from app.state, session id extraction)
- exception_handlers.py: Domain exception -> HTTP response mapping
"""
