"""FastAPI application factory for the store health surface."""

from __future__ import annotations

from fastapi import FastAPI

from squirrel.storage.manager import ConnectionManager
from squirrel.web.routes import health_router


def create_app(manager: ConnectionManager, lifespan=None) -> FastAPI:
    """Build and return a FastAPI application bound to ``manager``."""
    app = FastAPI(title="Squirrel", docs_url="/api/docs", lifespan=lifespan)
    app.state.store = manager
    app.include_router(health_router)
    return app
