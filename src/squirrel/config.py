"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    profile_dir: str

    # Optional — Store
    database_filename: str = "interests.sqlite"
    shared_cache: bool = False
    acquire_timeout_seconds: float = 30.0

    # Optional — Web
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Optional — Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"

    @property
    def database_path(self) -> str:
        return str(Path(self.profile_dir) / self.database_filename)


_REQUIRED_VARS = [
    "PROFILE_DIR",
]


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return Config(
        # Required
        profile_dir=os.environ["PROFILE_DIR"],
        # Optional — Store
        database_filename=os.environ.get("DATABASE_FILENAME", "interests.sqlite"),
        shared_cache=os.environ.get("SHARED_CACHE", "0") == "1",
        acquire_timeout_seconds=float(os.environ.get("ACQUIRE_TIMEOUT_SECONDS", "30")),
        # Optional — Web
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=int(os.environ.get("WEB_PORT", "8080")),
        # Optional — Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )
