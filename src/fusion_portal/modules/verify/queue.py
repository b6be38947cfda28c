"""
Fusion Portal Verify - Verification queue.

Client-side list of audio files staged for the verification backend.

Each file walks a small state machine:

    queued -> uploading -> verifying -> completed
                  |            |
                  +-> error <--+
                        |
                        +-> queued   (explicit retry only)

Processing runs a bounded pool of workers over the queued items in
submission order. With the default pool size of 1 the backend sees one
file at a time. Every in-flight file runs in its own task so removing it
cancels the request, and each run carries an attempt number so a late
response can never touch a removed or retried row.
"""

import asyncio
import base64
import logging
from collections.abc import Iterable
from uuid import uuid4

from fusion_portal.config import QueueSettings, get_settings
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import ConflictException, NotFoundException, PortalException
from fusion_portal.modules.verify.schemas import (
    ALLOWED_TRANSITIONS,
    AddFilesReport,
    AudioUpload,
    FileStatus,
    QueuedFile,
    QueueState,
    QueueSummary,
    RejectedFile,
)
from fusion_portal.observability.metrics import MetricsStore, get_metrics_store

logger = logging.getLogger(__name__)

NO_CONTEXT_MESSAGE = "No organization or environment selected"
FALLBACK_ERROR = "Verification failed"
INTERRUPTED_MESSAGE = "Verification interrupted"

# Indicative progress checkpoints
PROGRESS_STARTED = 10
PROGRESS_ENCODED = 50
PROGRESS_RESPONDED = 90
PROGRESS_DONE = 100


def _encode(upload: AudioUpload) -> str:
    return base64.b64encode(upload.read_bytes()).decode("ascii")


class VerificationQueue:
    """In-memory verification queue bound to the current session context."""

    def __init__(
        self,
        session: SessionStore,
        client: FunctionsClient,
        notifier: Notifier,
        settings: QueueSettings | None = None,
        metrics: MetricsStore | None = None,
    ):
        self.session = session
        self.client = client
        self.notifier = notifier
        self.settings = settings or get_settings().queue
        self.metrics = metrics or get_metrics_store()

        # dicts keep insertion order, which is the submission order
        self._items: dict[str, QueuedFile] = {}
        self._sources: dict[str, AudioUpload] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._processing = False
        self._slots: asyncio.Semaphore | None = None
        self._slots_loop: asyncio.AbstractEventLoop | None = None

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def processing(self) -> bool:
        return self._processing

    def list_items(self) -> list[QueuedFile]:
        return [item.model_copy() for item in self._items.values()]

    def get_item(self, item_id: str) -> QueuedFile:
        return self._get_or_raise(item_id).model_copy()

    def state(self) -> QueueState:
        return QueueState(items=self.list_items(), processing=self._processing)

    def _get_or_raise(self, item_id: str) -> QueuedFile:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundException("queued file", item_id)
        return item

    # =========================================================================
    # Admission
    # =========================================================================

    def validate_file(self, upload: AudioUpload) -> tuple[bool, str | None]:
        """
        Check a file against the allowed formats and size limit.
        Returns (is_valid, reason).
        """
        allowed = [ext.lower() for ext in self.settings.allowed_extensions]
        if upload.extension not in allowed:
            return False, f"Unsupported format. Allowed: {', '.join(allowed)}"

        if upload.size > self.settings.max_file_size_bytes:
            limit_mb = self.settings.max_file_size_bytes // (1024 * 1024)
            return False, f"File too large. Maximum size: {limit_mb}MB"

        return True, None

    def _is_duplicate(self, upload: AudioUpload) -> bool:
        # name+size heuristic, not a content hash
        return any(
            item.file_name == upload.name and item.file_size == upload.size
            for item in self._items.values()
        )

    def add_files_to_queue(self, files: Iterable[AudioUpload]) -> AddFilesReport:
        """Admit valid, non-duplicate files in the `queued` state."""
        report = AddFilesReport()

        for upload in files:
            is_valid, reason = self.validate_file(upload)
            if not is_valid:
                logger.info(f"Rejected {upload.name}: {reason}")
                report.rejected.append(RejectedFile(file_name=upload.name, reason=reason))
                self.notifier.error(f"{upload.name}: {reason}")
                continue

            if self._is_duplicate(upload):
                report.duplicates.append(upload.name)
                self.notifier.error(f"{upload.name} is already in queue")
                continue

            item = QueuedFile(id=str(uuid4()), file_name=upload.name, file_size=upload.size)
            self._items[item.id] = item
            self._sources[item.id] = upload
            report.added.append(item.model_copy())

        if report.added:
            self.notifier.success(f"Added {len(report.added)} file(s) to queue")

        return report

    # =========================================================================
    # Removal
    # =========================================================================

    def remove_from_queue(self, item_id: str) -> None:
        """Drop one row; an in-flight request for it is cancelled."""
        self._get_or_raise(item_id)
        self._discard(item_id)
        logger.info(f"Removed {item_id} from verification queue")

    def clear_queue(self) -> int:
        """Drop every row, cancelling all in-flight requests. Returns the count removed."""
        count = len(self._items)
        for item_id in list(self._items):
            self._discard(item_id)
        logger.info(f"Cleared verification queue ({count} item(s))")
        return count

    def _discard(self, item_id: str) -> None:
        self._items.pop(item_id, None)
        self._sources.pop(item_id, None)
        task = self._tasks.pop(item_id, None)
        if task is not None and not task.done():
            task.cancel()

    # =========================================================================
    # Processing
    # =========================================================================

    async def process_queue(self) -> QueueSummary:
        """Verify every currently queued file and report the batch outcome.

        One file failing never stops the others.
        """
        if self._processing:
            raise ConflictException("Queue is already processing")

        pending = [item.id for item in self._items.values() if item.status is FileStatus.QUEUED]
        if not pending:
            self.notifier.error("No files in queue to verify")
            return QueueSummary()

        work: asyncio.Queue[str] = asyncio.Queue()
        for item_id in pending:
            work.put_nowait(item_id)

        outcomes: dict[str, FileStatus | None] = {}
        worker_count = min(self.settings.max_concurrency, len(pending))

        self._processing = True
        logger.info(f"Processing {len(pending)} queued file(s) with {worker_count} worker(s)")
        try:
            await asyncio.gather(*(self._worker(work, outcomes) for _ in range(worker_count)))
        finally:
            self._processing = False

        summary = QueueSummary(
            items=[self._items[i].model_copy() for i in pending if i in self._items],
        )
        for item_id in pending:
            outcome = outcomes.get(item_id)
            if outcome is FileStatus.COMPLETED:
                summary.succeeded += 1
            elif outcome is FileStatus.ERROR:
                summary.failed += 1
            else:
                summary.cancelled += 1

        self._notify_summary(summary)
        return summary

    def _notify_summary(self, summary: QueueSummary) -> None:
        if summary.succeeded > 0 and summary.failed == 0:
            self.notifier.success(f"Successfully verified {summary.succeeded} file(s)")
        elif summary.succeeded > 0:
            self.notifier.warning(f"Verified {summary.succeeded} file(s), {summary.failed} failed")
        elif summary.failed > 0:
            self.notifier.error("All verifications failed")
        else:
            self.notifier.info("Verification cancelled")

    async def _worker(self, work: asyncio.Queue, outcomes: dict[str, FileStatus | None]) -> None:
        while True:
            try:
                item_id = work.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcomes[item_id] = await self._run_item(item_id)

    async def retry_file(self, item_id: str) -> QueuedFile:
        """Reset a failed row to `queued` and verify it again on its own."""
        item = self._get_or_raise(item_id)
        self._transition(item, FileStatus.QUEUED, progress=0, error=None, result=None)
        item.attempt += 1
        logger.info(f"Retrying {item.file_name} (attempt {item.attempt})")

        await self._run_item(item_id)
        return self._get_or_raise(item_id).model_copy()

    def _get_slots(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._slots is None or self._slots_loop is not loop:
            self._slots = asyncio.Semaphore(self.settings.max_concurrency)
            self._slots_loop = loop
        return self._slots

    async def _run_item(self, item_id: str) -> FileStatus | None:
        """Run one verification in its own task. None means the row was discarded."""
        async with self._get_slots():
            item = self._items.get(item_id)
            if item is None or item.status is not FileStatus.QUEUED:
                return None

            attempt = item.attempt
            task = asyncio.create_task(self._verify(item_id, attempt), name=f"verify:{item_id}")
            self._tasks[item_id] = task
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                # the caller went away; the verification goes with it
                task.cancel()
                self._fail(item_id, attempt, INTERRUPTED_MESSAGE)
                raise
            finally:
                if self._tasks.get(item_id) is task:
                    del self._tasks[item_id]

        if task.cancelled() or not self._is_current(item_id, attempt):
            logger.info(f"Verification of {item_id} cancelled")
            self.metrics.record_verification("cancelled")
            return None

        error = task.exception()
        if error is not None:
            logger.error(f"Unexpected failure verifying {item_id}: {error}", exc_info=error)
            return self._fail(item_id, attempt, FALLBACK_ERROR)

        return task.result()

    async def _verify(self, item_id: str, attempt: int) -> FileStatus | None:
        """encode -> upload -> verify, strictly in that order."""
        item = self._items[item_id]
        upload = self._sources[item_id]
        self._transition(item, FileStatus.UPLOADING, progress=PROGRESS_STARTED)

        org = self.session.get_current_organization()
        env = self.session.get_current_environment()
        user = self.session.get_current_user()
        if org is None or env is None or user is None:
            return self._fail(item_id, attempt, NO_CONTEXT_MESSAGE)

        try:
            file_data = await asyncio.to_thread(_encode, upload)
        except OSError as e:
            return self._fail(item_id, attempt, f"Could not read {upload.name}: {e.strerror or e}")

        if not self._is_current(item_id, attempt):
            return None
        self._transition(item, FileStatus.VERIFYING, progress=PROGRESS_ENCODED)

        try:
            response = await self.client.verify_audio(
                organization_id=org.id,
                environment_id=env.id,
                user_id=user.id,
                file_data=file_data,
                file_name=upload.name,
                file_size=upload.size,
            )
        except PortalException as e:
            return self._fail(item_id, attempt, e.message or FALLBACK_ERROR)

        if not self._is_current(item_id, attempt):
            return None
        item.progress = PROGRESS_RESPONDED

        verification = response.verification
        self._transition(item, FileStatus.COMPLETED, progress=PROGRESS_DONE, result=verification)
        self.metrics.record_verification(verification.result)
        logger.info(
            f"Verified {upload.name}: result={verification.result} "
            f"confidence={verification.confidence_score}"
        )
        return FileStatus.COMPLETED

    # =========================================================================
    # State machine
    # =========================================================================

    def _is_current(self, item_id: str, attempt: int) -> bool:
        item = self._items.get(item_id)
        return item is not None and item.attempt == attempt

    @staticmethod
    def _transition(item: QueuedFile, target: FileStatus, **changes) -> None:
        if target not in ALLOWED_TRANSITIONS[item.status]:
            raise ConflictException(
                f"Cannot move {item.file_name} from {item.status.value} to {target.value}",
                current_state=item.status.value,
                target_state=target.value,
            )
        item.status = target
        for name, value in changes.items():
            setattr(item, name, value)

    def _fail(self, item_id: str, attempt: int, message: str) -> FileStatus | None:
        if not self._is_current(item_id, attempt):
            return None
        item = self._items[item_id]
        if FileStatus.ERROR not in ALLOWED_TRANSITIONS[item.status]:
            return item.status
        self._transition(item, FileStatus.ERROR, progress=0, error=message)
        self.metrics.record_verification("error")
        logger.warning(f"Verification of {item.file_name} failed: {message}")
        return FileStatus.ERROR
