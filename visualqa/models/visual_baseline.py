"""Visual baseline data structures."""

from __future__ import annotations

from pydantic import BaseModel


class BaselineEntry(BaseModel):
    name: str
    image_path: str
    size_bytes: int
    image_hash: str  # SHA-256 hex digest
    modified_at: str  # ISO timestamp
