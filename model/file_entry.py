# model/file_entry.py
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field
from util.functions import new_local_id

FileStatus = Literal[
    "uploading",
    "uploaded",
    "processing",
    "error",
]


class FileEntry(BaseModel):
    """
    One visible manifest row.
    - `id` is local only; `slug` is assigned by the backend once stored.
    - `persisted` mirrors slug presence but is tracked on its own so an
      optimistic row can flip in a single update.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_local_id)
    name: str
    size: int = Field(default=0, ge=0)
    status: FileStatus = "uploading"
    slug: str = ""
    remoteUrl: str = ""
    error: str = ""
    deleting: bool = False
    persisted: bool = False
