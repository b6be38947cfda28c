"""Fusion Portal Verify Module - audio verification queue."""

from fusion_portal.modules.verify.queue import VerificationQueue
from fusion_portal.modules.verify.schemas import AudioUpload, FileStatus, QueuedFile

__all__ = ["VerificationQueue", "AudioUpload", "FileStatus", "QueuedFile"]
