# core/entities.py
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Union
from model.file_entry import FileEntry
from model.manifest import ManifestSnapshot


@dataclass(frozen=True)
class UploadSource:
    """
    Bytes of one local document, held until the backend confirms it so a failed
    row can be retried.
    """

    name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadSource":
        p = Path(path)
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            name=p.name,
            data=p.read_bytes(),
            content_type=guessed or "application/octet-stream",
        )


# ---------------- Manifest events ----------------


@dataclass(frozen=True)
class ApplyManifest:
    # Backend- or cache-confirmed rows; replaces every persisted row.
    entries: Sequence[FileEntry]
    skip_cache: bool = False


@dataclass(frozen=True)
class AppendEntries:
    entries: Sequence[FileEntry]


@dataclass(frozen=True)
class PatchEntry:
    entry_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoveEntry:
    entry_id: str


ManifestEvent = Union[ApplyManifest, AppendEntries, PatchEntry, RemoveEntry]


@dataclass(frozen=True)
class ManifestTransition:
    files: list[FileEntry]
    writes: list[ManifestSnapshot]
