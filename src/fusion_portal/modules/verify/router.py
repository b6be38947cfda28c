"""
Fusion Portal Verify - Router.

Endpoints for staging audio files and running verification.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from fusion_portal.deps import get_verification_queue, require_session, require_verify
from fusion_portal.modules.verify.queue import VerificationQueue
from fusion_portal.modules.verify.schemas import (
    AddFilesReport,
    AudioUpload,
    QueuedFile,
    QueueState,
    QueueSummary,
)

router = APIRouter(
    prefix="/client/verify",
    tags=["verify"],
    dependencies=[require_verify, Depends(require_session)],
)

logger = logging.getLogger(__name__)

Queue = Annotated[VerificationQueue, Depends(get_verification_queue)]


async def _to_audio_upload(upload: UploadFile, queue: VerificationQueue) -> AudioUpload:
    """Read an upload only once its name and declared size pass the queue's checks."""
    name = upload.filename or "audio"
    declared = AudioUpload(name=name, size=upload.size or 0, content=b"")
    is_valid, _ = queue.validate_file(declared)
    if not is_valid:
        # add_files_to_queue reports the rejection
        return declared

    limit = queue.settings.max_file_size_bytes
    content = await upload.read(limit + 1)
    return AudioUpload(name=name, size=max(upload.size or 0, len(content)), content=content)


@router.get("/queue", response_model=QueueState)
async def get_queue(queue: Queue):
    """Current queue rows and whether a run is in progress."""
    return queue.state()


@router.post("/queue", response_model=AddFilesReport, status_code=201)
async def add_files(
    queue: Queue,
    files: list[UploadFile] = File(..., description="Audio files to verify"),
):
    """
    Stage files for verification.

    - Unsupported formats and files over the size limit are rejected
    - A file with the same name and size as a queued one is a duplicate
    - Rejected files are never read
    """
    uploads = [await _to_audio_upload(upload, queue) for upload in files]
    return queue.add_files_to_queue(uploads)


@router.post("/queue/process", response_model=QueueSummary)
async def process_queue(queue: Queue):
    """Verify every queued file and report succeeded/failed counts."""
    return await queue.process_queue()


@router.get("/queue/{item_id}", response_model=QueuedFile)
async def get_item(item_id: str, queue: Queue):
    return queue.get_item(item_id)


@router.post("/queue/{item_id}/retry", response_model=QueuedFile)
async def retry_item(item_id: str, queue: Queue):
    """Re-run a failed file on its own."""
    return await queue.retry_file(item_id)


@router.delete("/queue/{item_id}", status_code=204)
async def remove_item(item_id: str, queue: Queue):
    queue.remove_from_queue(item_id)


@router.delete("/queue")
async def clear_queue(queue: Queue):
    removed = queue.clear_queue()
    return {"removed": removed}
