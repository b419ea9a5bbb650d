"""Pydantic v2 response models for the health surface."""

from __future__ import annotations

from pydantic import BaseModel


class StoreHealth(BaseModel):
    status: str
    state: str
    schema_version: int | None = None
    migration_occurred: bool | None = None
    detail: str | None = None
