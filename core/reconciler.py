# core/reconciler.py
import math
from datetime import datetime
from typing import Any, Iterable, Sequence, get_args
from core.entities import (
    AppendEntries,
    ApplyManifest,
    ManifestEvent,
    ManifestTransition,
    PatchEntry,
    RemoveEntry,
)
from model.file_entry import FileEntry, FileStatus
from model.manifest import FileSummary, ManifestSnapshot
from util.constants import DEFAULT_FILE_NAME

_FILE_STATUSES = frozenset(get_args(FileStatus))


def numeric_size(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        as_float = float(value)
    except OverflowError:
        return None
    if not math.isfinite(as_float) or as_float < 0:
        return None
    return int(value)


def entries_from_remote(files: Iterable[FileSummary]) -> list[FileEntry]:
    """
    Map backend (or cached) summaries to fresh persisted rows.
    Rows without slug and name are dropped; unknown statuses read as uploaded.
    """
    out: list[FileEntry] = []
    for f in files:
        if f is None or not (f.slug or f.fileName):
            continue
        status = f.status if f.status in _FILE_STATUSES else "uploaded"
        out.append(
            FileEntry(
                name=f.fileName or f.slug or DEFAULT_FILE_NAME,
                size=numeric_size(f.size) or 0,
                status=status,
                slug=f.slug or "",
                remoteUrl=f.remoteUrl or "",
                persisted=True,
            )
        )
    return out


def merge(
    server_entries: Sequence[FileEntry], current_visible: Sequence[FileEntry]
) -> list[FileEntry]:
    """Confirmed rows first, then every row still waiting on the backend."""
    return [*server_entries, *(e for e in current_visible if not e.persisted)]


def snapshot_of(files: Iterable[FileEntry], now: datetime) -> ManifestSnapshot:
    return ManifestSnapshot(
        updatedAt=now.isoformat(),
        files=[
            FileSummary(
                status=f.status,
                slug=f.slug,
                fileName=f.name,
                remoteUrl=f.remoteUrl,
                size=f.size,
            )
            for f in files
            if f.persisted and f.slug
        ],
    )


def _unique_slugs(files: Iterable[FileEntry], keep_id: str | None = None) -> list[FileEntry]:
    # First row per slug wins, except `keep_id` which always wins its slug.
    winners: dict[str, str] = {}
    rows = list(files)
    if keep_id is not None:
        for f in rows:
            if f.id == keep_id and f.slug:
                winners[f.slug] = f.id
    for f in rows:
        if f.slug and f.slug not in winners:
            winners[f.slug] = f.id
    return [f for f in rows if not f.slug or winners[f.slug] == f.id]


def reduce_manifest(
    files: Sequence[FileEntry], event: ManifestEvent, now: datetime
) -> ManifestTransition:
    """
    The only way the visible list changes. Returns the next list plus the cache
    writes it implies: one snapshot of the persisted rows, none when the event
    came from the cache itself.
    """
    skip_cache = False

    if isinstance(event, ApplyManifest):
        nxt = _unique_slugs(merge(event.entries, files))
        skip_cache = event.skip_cache
    elif isinstance(event, AppendEntries):
        known = {f.id for f in files}
        nxt = [*files, *(e for e in event.entries if e.id not in known)]
    elif isinstance(event, PatchEntry):
        nxt = [
            f.model_copy(update=dict(event.changes)) if f.id == event.entry_id else f
            for f in files
        ]
        if event.changes.get("slug"):
            nxt = _unique_slugs(nxt, keep_id=event.entry_id)
    elif isinstance(event, RemoveEntry):
        nxt = [f for f in files if f.id != event.entry_id]
    else:
        raise TypeError(f"unknown manifest event: {type(event).__name__}")

    writes = [] if skip_cache else [snapshot_of(nxt, now)]
    return ManifestTransition(files=nxt, writes=writes)
