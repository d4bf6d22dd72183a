from __future__ import annotations

import logging
from typing import Any, Sequence

from app.core.dates import parse_optional_date
from app.models.certification import Certification
from app.repositories.certifications import CertificationRepository
from app.services.batch_upload import BatchDeadline, BatchUploadCoordinator, UploadJob, UploadOutcome
from app.services.object_store import ObjectStore

logger = logging.getLogger(__name__)

DATE_FIELDS = ("issue_date", "expiry_date")


class CertificationService:
    def __init__(
        self,
        repository: CertificationRepository,
        store: ObjectStore,
        coordinator: BatchUploadCoordinator | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.coordinator = coordinator or BatchUploadCoordinator(store, repository)

    def store_batch(
        self,
        jobs: Sequence[UploadJob],
        worker_hint: int | None,
        base_url: str,
        deadline: BatchDeadline,
    ) -> list[UploadOutcome]:
        return self.coordinator.store_batch(jobs, worker_hint, base_url, deadline)

    def get_all(self) -> list[Certification]:
        return self.repository.find_all()

    def get_by_id(self, certification_id: int) -> Certification:
        return self.repository.find_by_id(certification_id)

    def update(self, certification_id: int, updates: dict[str, Any]) -> Certification:
        """
        Partial metadata update. Date fields arrive as strings in any supported format;
        an empty expiry_date clears it. Raises ValueError on an unparseable date.
        """
        values = dict(updates)
        for field in DATE_FIELDS:
            if field not in values:
                continue
            parsed = parse_optional_date(values[field])
            if parsed is None and field == "issue_date":
                raise ValueError("issue_date cannot be cleared")
            values[field] = parsed

        if values:
            self.repository.update(certification_id, values)
            logger.info("Updated certification %d fields=%s", certification_id, sorted(values))
        return self.repository.find_by_id(certification_id)

    def delete(self, certification_id: int) -> None:
        cert = self.repository.find_by_id(certification_id)
        self.repository.delete(certification_id)

        # The record is authoritative; the stored file goes best-effort.
        try:
            self.store.delete(cert.file_name)
        except Exception as exc:
            logger.warning("Failed to delete stored file %s: %s", cert.file_name, exc)

        logger.info("Deleted certification %d (%s)", certification_id, cert.file_name)
