"""
Batch certificate upload pipeline.

A fixed-size pool of worker threads drains a shared queue of UploadJobs. Each job is
validated, written to the object store under a generated name, and recorded through
the certification repository. Every job produces exactly one outcome; failures are
returned as data, never raised, so a batch can partially succeed.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import BinaryIO, Callable, Sequence, Union

from app.core.dates import parse_date, today_utc
from app.models.certification import Certification
from app.repositories.certifications import CertificationRepository
from app.services.file_validation import INVALID_FILE_TYPE_MESSAGE, file_extension, is_allowed_file
from app.services.object_store import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 3
DEFAULT_ISSUER = "N/A"


# ---------- Errors ----------

class BatchUploadError(Exception):
    pass


class InvalidFileType(BatchUploadError):
    def __init__(self) -> None:
        super().__init__(INVALID_FILE_TYPE_MESSAGE)


class FileTooLarge(BatchUploadError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"file too large: {size} bytes exceeds the {limit} byte limit")


class DeadlineExceeded(BatchUploadError):
    def __init__(self) -> None:
        super().__init__("deadline exceeded")


class BatchCancelled(BatchUploadError):
    def __init__(self) -> None:
        super().__init__("batch cancelled")


# ---------- Cancellation ----------

class BatchDeadline:
    """
    Cancellation context for one batch: fires when the timeout elapses or when
    cancel() is called, whichever happens first.
    """

    def __init__(self, timeout_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + max(0.0, float(timeout_seconds))
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def done(self) -> bool:
        return self._cancelled.is_set() or self._clock() >= self._expires_at

    def cause(self) -> BatchUploadError | None:
        if self._cancelled.is_set():
            return BatchCancelled()
        if self._clock() >= self._expires_at:
            return DeadlineExceeded()
        return None


# ---------- Jobs and outcomes ----------

@dataclass(frozen=True)
class CertificationMetadata:
    title: str | None = None
    issuer: str | None = None
    issue_date: str | None = None
    expiry_date: str | None = None
    credential_id: str | None = None
    credential_url: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class UploadJob:
    stream: BinaryIO
    original_name: str
    size: int
    content_type: str | None = None
    metadata: CertificationMetadata | None = None


@dataclass(frozen=True)
class UploadSuccess:
    original_name: str
    record: Certification

    success = True


@dataclass(frozen=True)
class UploadFailure:
    original_name: str
    cause: BaseException

    success = False

    @property
    def message(self) -> str:
        return str(self.cause) or type(self.cause).__name__


UploadOutcome = Union[UploadSuccess, UploadFailure]


@dataclass(frozen=True)
class BatchSummary:
    total: int
    successful: int
    failed: int

    @property
    def status(self) -> str:
        if self.successful == 0:
            return "failed"
        if self.failed > 0:
            return "partial"
        return "success"

    @property
    def http_status(self) -> int:
        return {"success": 200, "partial": 207, "failed": 500}[self.status]


def summarize(outcomes: Sequence[UploadOutcome]) -> BatchSummary:
    successful = sum(1 for o in outcomes if o.success)
    return BatchSummary(total=len(outcomes), successful=successful, failed=len(outcomes) - successful)


# ---------- Helpers ----------

def resolve_worker_count(hint: int | None, job_count: int, default: int = DEFAULT_MAX_WORKERS) -> int:
    workers = int(hint or 0)
    if workers <= 0:
        workers = default
    return max(1, min(workers, job_count))


def generate_storage_name(extension: str) -> str:
    return f"{time.time_ns()}-{uuid.uuid4()}{extension}"


def public_url(base_url: str, storage_name: str) -> str:
    return f"{base_url.rstrip('/')}/{storage_name}"


def _issue_date(raw: str | None) -> date:
    if not raw or not raw.strip():
        return today_utc()
    try:
        return parse_date(raw)
    except ValueError:
        logger.debug("Unparseable issue date %r, defaulting to today", raw)
        return today_utc()


def build_certification(job: UploadJob, storage_name: str, base_url: str) -> Certification:
    meta = job.metadata or CertificationMetadata()

    cert = Certification(
        title=meta.title or job.original_name,
        issuer=meta.issuer or DEFAULT_ISSUER,
        issue_date=_issue_date(meta.issue_date),
        file_url=public_url(base_url, storage_name),
        file_name=storage_name,
        original_name=job.original_name,
        file_size=int(job.size or 0),
        mime_type=job.content_type or "application/octet-stream",
    )

    if meta.expiry_date:
        try:
            cert.expiry_date = parse_date(meta.expiry_date)
        except ValueError:
            logger.debug("Ignoring unparseable expiry date %r", meta.expiry_date)
    if meta.credential_id:
        cert.credential_id = meta.credential_id
    if meta.credential_url:
        cert.credential_url = meta.credential_url
    if meta.description:
        cert.description = meta.description

    return cert


# ---------- Coordinator ----------

class BatchUploadCoordinator:
    def __init__(
        self,
        store: ObjectStore,
        repository: CertificationRepository,
        *,
        default_workers: int = DEFAULT_MAX_WORKERS,
        max_file_bytes: int | None = None,
    ) -> None:
        self.store = store
        self.repository = repository
        self.default_workers = default_workers
        self.max_file_bytes = max_file_bytes

    def store_batch(
        self,
        jobs: Sequence[UploadJob],
        worker_hint: int | None,
        base_url: str,
        deadline: BatchDeadline,
    ) -> list[UploadOutcome]:
        if not jobs:
            return []

        workers = resolve_worker_count(worker_hint, len(jobs), self.default_workers)
        logger.info("Starting batch upload of %d files with %d workers", len(jobs), workers)

        # Fully loaded before any worker starts; an empty intake means "no more work".
        intake: queue.Queue[UploadJob] = queue.Queue()
        for job in jobs:
            intake.put(job)
        results: queue.Queue[UploadOutcome] = queue.Queue()

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cert-upload") as pool:
            futures = [
                pool.submit(self._worker, worker_id, intake, results, base_url, deadline)
                for worker_id in range(1, workers + 1)
            ]
        for future in futures:
            future.result()

        outcomes: list[UploadOutcome] = []
        while not results.empty():
            outcomes.append(results.get_nowait())

        summary = summarize(outcomes)
        logger.info("Finished batch upload: %d/%d successful", summary.successful, len(jobs))
        return outcomes

    def _worker(
        self,
        worker_id: int,
        intake: queue.Queue,
        results: queue.Queue,
        base_url: str,
        deadline: BatchDeadline,
    ) -> None:
        while True:
            try:
                job = intake.get_nowait()
            except queue.Empty:
                return
            try:
                outcome = self._process(worker_id, job, base_url, deadline)
            except Exception as exc:
                logger.exception("Worker %d: unexpected failure for %s", worker_id, job.original_name)
                outcome = UploadFailure(job.original_name, exc)
            results.put(outcome)

    def _process(self, worker_id: int, job: UploadJob, base_url: str, deadline: BatchDeadline) -> UploadOutcome:
        cause = deadline.cause()
        if cause is not None:
            return UploadFailure(job.original_name, cause)

        ext = file_extension(job.original_name)
        if not is_allowed_file(job.original_name):
            logger.warning("Worker %d: invalid file type %r for %s", worker_id, ext, job.original_name)
            return UploadFailure(job.original_name, InvalidFileType())

        if self.max_file_bytes is not None and job.size and job.size > self.max_file_bytes:
            logger.warning("Worker %d: %s is too large (%d bytes)", worker_id, job.original_name, job.size)
            return UploadFailure(job.original_name, FileTooLarge(job.size, self.max_file_bytes))

        storage_name = generate_storage_name(ext)
        try:
            self.store.save(storage_name, job.stream, job.content_type)
        except Exception as exc:
            logger.error("Worker %d: failed to save %s: %s", worker_id, job.original_name, exc)
            return UploadFailure(job.original_name, exc)

        try:
            certification = build_certification(job, storage_name, base_url)
            self.repository.create(certification)
        except Exception as exc:
            logger.error("Worker %d: failed to save %s to database: %s", worker_id, job.original_name, exc)
            self._discard(worker_id, storage_name)
            return UploadFailure(job.original_name, exc)

        logger.debug("Worker %d: successfully saved %s as %s", worker_id, job.original_name, storage_name)
        return UploadSuccess(job.original_name, certification)

    def _discard(self, worker_id: int, storage_name: str) -> None:
        try:
            self.store.delete(storage_name)
        except Exception as exc:
            logger.warning("Worker %d: failed to remove orphaned file %s: %s", worker_id, storage_name, exc)
