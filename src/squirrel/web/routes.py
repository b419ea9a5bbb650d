"""API route handlers for the store health surface."""

from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from squirrel.storage.errors import OpenError
from squirrel.storage.manager import AcquisitionState, ConnectionManager
from squirrel.web.models import StoreHealth

logger = logging.getLogger(__name__)

health_router = APIRouter()


def _respond(health: StoreHealth, status_code: int) -> JSONResponse:
    return JSONResponse(health.model_dump(exclude_none=True), status_code=status_code)


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Report the store acquisition state without triggering an acquisition."""
    manager: ConnectionManager = request.app.state.store
    state = manager.state

    if state in (AcquisitionState.UNSTARTED, AcquisitionState.PENDING):
        return _respond(StoreHealth(status="starting", state=state.value), 503)

    if state is not AcquisitionState.READY:
        error = manager.error
        detail = str(error) if error is not None else "store is closed"
        return _respond(
            StoreHealth(status="unhealthy", state=state.value, detail=detail), 503
        )

    try:
        conn = manager.acquire(timeout=0)
        conn.execute("SELECT 1")
        migrated = manager.migration_occurred(timeout=0)
    except (OpenError, sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return _respond(
            StoreHealth(status="unhealthy", state=state.value, detail=str(exc)), 503
        )

    return _respond(
        StoreHealth(
            status="healthy",
            state=state.value,
            schema_version=conn.schema_version,
            migration_occurred=migrated,
        ),
        200,
    )
