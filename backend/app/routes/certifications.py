import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from app.core.config import settings
from app.core.rate_limit import limiter
from app.dependencies.auth import get_current_user
from app.dependencies.certifications import get_certification_service, get_object_store
from app.repositories.certifications import CertificationNotFound
from app.schemas.auth import MessageOut
from app.schemas.certification import (
    BatchUploadOut,
    CertificationOut,
    CertificationUpdate,
    UploadedFileOut,
    UploadErrorOut,
)
from app.services.batch_upload import (
    BatchDeadline,
    CertificationMetadata,
    UploadJob,
    summarize,
)
from app.services.certifications import CertificationService
from app.services.object_store import InvalidObjectName, LocalObjectStore, ObjectStore, S3ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/upload-certificates", tags=["certifications"])

# Public download path for stored files; the prefix is part of every file_url.
files_router = APIRouter(prefix="/certifications", tags=["certifications"])


def _maybe_limit(rule: str):
    if not settings.ENABLE_RATE_LIMITING:
        def passthrough(fn):
            return fn
        return passthrough
    return limiter.limit(rule)


def _not_found(certification_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Certification {certification_id} not found")


def _files_base_url(request: Request) -> str:
    base = (settings.PUBLIC_BASE_URL or str(request.base_url)).rstrip("/")
    return f"{base}{files_router.prefix}"


def _batch_timeout(file_count: int) -> float:
    if file_count <= settings.BATCH_SMALL_MAX_FILES:
        return float(settings.BATCH_SMALL_TIMEOUT_SECONDS)
    return float(settings.BATCH_LARGE_TIMEOUT_SECONDS)


@router.get("", response_model=list[CertificationOut])
def list_certifications(service: CertificationService = Depends(get_certification_service)):
    return service.get_all()


@router.get("/{certification_id}", response_model=CertificationOut)
def get_certification(
    certification_id: int,
    service: CertificationService = Depends(get_certification_service),
):
    try:
        return service.get_by_id(certification_id)
    except CertificationNotFound:
        raise _not_found(certification_id)


@router.post("", response_model=BatchUploadOut, dependencies=[Depends(get_current_user)])
@_maybe_limit("10/minute")
def upload_certificates(
    request: Request,
    files: Optional[list[UploadFile]] = File(None),
    title: Optional[str] = Form(None),
    issuer: Optional[str] = Form(None),
    issue_date: Optional[str] = Form(None),
    expiry_date: Optional[str] = Form(None),
    credential_id: Optional[str] = Form(None),
    credential_url: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    workers: int = Query(0, ge=0, le=20),
    service: CertificationService = Depends(get_certification_service),
):
    """
    Store a batch of certificate images. Every file is validated, written to the
    object store and recorded independently; the status code reflects the mix:
    200 all stored, 207 some stored, 500 none stored. A part without a filename
    still counts toward the total and fails as an invalid file type.
    """
    uploads = list(files or [])
    if not uploads:
        raise HTTPException(status_code=400, detail="No files uploaded")

    metadata = CertificationMetadata(
        title=title,
        issuer=issuer,
        issue_date=issue_date,
        expiry_date=expiry_date,
        credential_id=credential_id,
        credential_url=credential_url,
        description=description,
    )
    jobs = [
        UploadJob(
            stream=f.file,
            original_name=f.filename or "",
            size=f.size or 0,
            content_type=f.content_type,
            metadata=metadata,
        )
        for f in uploads
    ]

    worker_hint = min(workers, settings.BATCH_MAX_WORKERS)
    deadline = BatchDeadline(_batch_timeout(len(jobs)))
    outcomes = service.store_batch(jobs, worker_hint, _files_base_url(request), deadline)
    summary = summarize(outcomes)

    body = BatchUploadOut(
        status=summary.status,
        total=summary.total,
        successful=summary.successful,
        failed=summary.failed,
        files=[UploadedFileOut.model_validate(o.record) for o in outcomes if o.success],
        errors=[UploadErrorOut(original=o.original_name, error=o.message) for o in outcomes if not o.success],
    )
    return JSONResponse(status_code=summary.http_status, content=body.model_dump(mode="json"))


@router.patch(
    "/{certification_id}",
    response_model=CertificationOut,
    dependencies=[Depends(get_current_user)],
)
def update_certification(
    certification_id: int,
    payload: CertificationUpdate,
    service: CertificationService = Depends(get_certification_service),
):
    updates = payload.model_dump(exclude_unset=True)
    # expiry_date, credential_id, credential_url and description may be cleared
    updates = {
        k: v for k, v in updates.items()
        if v is not None or k in {"expiry_date", "credential_id", "credential_url", "description"}
    }
    try:
        return service.update(certification_id, updates)
    except CertificationNotFound:
        raise _not_found(certification_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.delete(
    "/{certification_id}",
    response_model=MessageOut,
    dependencies=[Depends(get_current_user)],
)
def delete_certification(
    certification_id: int,
    service: CertificationService = Depends(get_certification_service),
):
    try:
        service.delete(certification_id)
    except CertificationNotFound:
        raise _not_found(certification_id)
    return {"message": "Certification deleted successfully"}


@files_router.get("/{file_name}")
def serve_certificate_file(file_name: str, store: ObjectStore = Depends(get_object_store)):
    if isinstance(store, S3ObjectStore):
        try:
            return RedirectResponse(store.presign_download(file_name))
        except InvalidObjectName:
            raise HTTPException(status_code=404, detail="File not found")

    if isinstance(store, LocalObjectStore) and store.exists(file_name):
        return FileResponse(store.path_for(file_name))

    raise HTTPException(status_code=404, detail="File not found")
