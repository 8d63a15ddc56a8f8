"""Drive appDataFolder file models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AppDataFile(BaseModel):
    id: str
    name: str
    modified_time: datetime | None = Field(default=None, alias="modifiedTime")
    size: int | None = None  # Drive reports int64 as string; pydantic coerces

    model_config = {"populate_by_name": True}


class FileMetadata(BaseModel):
    """Metadata part of a multipart upload."""
    name: str
    parents: list[str] | None = None
    mime_type: str | None = Field(default="text/plain", alias="mimeType")

    model_config = {"populate_by_name": True}
