# model/api.py
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field
from model.manifest import FileSummary

RemoteJobStatus = Literal["queued", "filling", "complete", "error"]


class ManifestResponse(BaseModel):
    files: list[FileSummary] = Field(default_factory=list)


class UploadResponse(BaseModel):
    status: Optional[Literal["uploaded", "processing"]] = None
    slug: Optional[str] = None
    remoteUrl: Optional[str] = None
    size: Any = None


class FillJobRequest(BaseModel):
    identity: str = Field(min_length=1)
    targetLink: str = Field(min_length=1)


class FillJobResponse(BaseModel):
    jobId: str = Field(min_length=1)
    status: RemoteJobStatus
    resultUrl: Optional[str] = None


class JobPollResponse(BaseModel):
    status: RemoteJobStatus
    resultUrl: Optional[str] = None
