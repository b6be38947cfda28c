"""
Fusion Portal Verify - Schemas.

Queue items, upload inputs and batch reports for the verification queue.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from fusion_portal.core.functions_schemas import VerificationResult


class FileStatus(str, Enum):
    """Per-file lifecycle in the verification queue."""

    QUEUED = "queued"
    UPLOADING = "uploading"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    ERROR = "error"


# completed is terminal; error only leaves through an explicit retry
ALLOWED_TRANSITIONS: dict[FileStatus, frozenset[FileStatus]] = {
    FileStatus.QUEUED: frozenset({FileStatus.UPLOADING}),
    FileStatus.UPLOADING: frozenset({FileStatus.VERIFYING, FileStatus.ERROR}),
    FileStatus.VERIFYING: frozenset({FileStatus.COMPLETED, FileStatus.ERROR}),
    FileStatus.ERROR: frozenset({FileStatus.QUEUED}),
    FileStatus.COMPLETED: frozenset(),
}


class AudioUpload(BaseModel):
    """A file offered to the queue, either in memory or on disk."""

    name: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)
    content: bytes | None = None
    path: Path | None = None

    @model_validator(mode="after")
    def _has_source(self) -> "AudioUpload":
        if self.content is None and self.path is None:
            raise ValueError("Either content or path is required")
        return self

    @property
    def extension(self) -> str:
        if "." not in self.name:
            return ""
        return "." + self.name.rsplit(".", 1)[-1].lower()

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        return self.path.read_bytes()


class QueuedFile(BaseModel):
    """One row of the verification queue."""

    id: str
    file_name: str
    file_size: int
    status: FileStatus = FileStatus.QUEUED
    progress: int = Field(default=0, ge=0, le=100)
    result: VerificationResult | None = None
    error: str | None = None
    attempt: int = 0


class RejectedFile(BaseModel):
    file_name: str
    reason: str


class AddFilesReport(BaseModel):
    """Outcome of offering a batch of files to the queue."""

    added: list[QueuedFile] = Field(default_factory=list)
    rejected: list[RejectedFile] = Field(default_factory=list)
    duplicates: list[str] = Field(default_factory=list)


class QueueSummary(BaseModel):
    """Counts for one processing run. Cancelled items are neither success nor failure."""

    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    items: list[QueuedFile] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.cancelled


class QueueState(BaseModel):
    items: list[QueuedFile] = Field(default_factory=list)
    processing: bool = False
