# model/manifest.py
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class FileSummary(BaseModel):
    """Manifest row as the backend lists it and as the cache stores it."""

    model_config = ConfigDict(extra="ignore")

    slug: Optional[str] = None
    fileName: Optional[str] = None
    size: Any = None
    status: Optional[str] = None
    remoteUrl: Optional[str] = None


class ManifestSnapshot(BaseModel):
    # ISO-8601 string; an unparsable value makes the snapshot stale, not invalid
    updatedAt: str = ""
    files: list[FileSummary]


class CacheReadResult(BaseModel):
    snapshot: ManifestSnapshot
    isStale: bool
