"""Application entry point — opens the tab store and serves its health surface."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn

from squirrel.config import Config, load_config
from squirrel.lifecycle import PROFILE_TEARDOWN, EventSource
from squirrel.storage import ConnectionManager, open_store
from squirrel.storage.errors import OpenError
from squirrel.web.app import create_app

logger = logging.getLogger("squirrel")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_manager(config: Config, events: EventSource) -> ConnectionManager:
    """Resolve the profile directory and create the process's store manager."""
    Path(config.profile_dir).mkdir(parents=True, exist_ok=True)
    opener = functools.partial(open_store, shared_cache=config.shared_cache)
    return ConnectionManager(config.database_path, events, opener=opener)


def build_lifespan(config: Config, manager: ConnectionManager, events: EventSource):
    """Acquire the store on startup and fire profile teardown on shutdown."""

    @asynccontextmanager
    async def lifespan(app):
        try:
            # shield: a startup timeout must not abandon the in-flight acquisition
            await asyncio.wait_for(
                asyncio.shield(manager.acquire_async()),
                config.acquire_timeout_seconds,
            )
        except (OpenError, asyncio.TimeoutError):
            logger.exception("Store not ready at startup; health will report it")
        yield
        logger.info("Profile teardown")
        events.notify(PROFILE_TEARDOWN)

    return lifespan


def main() -> None:
    """Load config, set up logging, and serve the store health surface."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "Squirrel starting (env=%s, db=%s)",
        config.app_env,
        config.database_path,
    )

    events = EventSource()
    manager = build_manager(config, events)
    app = create_app(manager, lifespan=build_lifespan(config, manager, events))

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
