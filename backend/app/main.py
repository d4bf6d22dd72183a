import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.database import Database
from app.core.logging_config import configure_logging
from app.models import auth_session, certification, experience, project, user  # noqa: F401  registers tables
from app.core.rate_limit import limiter
from app.repositories.certifications import SqlAlchemyCertificationRepository
from app.routes.auth import router as auth_router
from app.routes.certifications import files_router as certification_files_router
from app.routes.certifications import router as certifications_router
from app.routes.experiences import router as experiences_router
from app.routes.projects import router as projects_router
from app.services.batch_upload import BatchUploadCoordinator
from app.services.certifications import CertificationService
from app.services.object_store import ObjectStore, build_object_store

logger = logging.getLogger(__name__)

API_VERSION = "1.0"

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    message: str
    details: dict | None = None

    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        msg = detail.get("message")
        message = msg if isinstance(msg, str) and msg else "Request failed"
        det = detail.get("details")
        details = det if isinstance(det, dict) else None
    else:
        message = str(detail) if detail is not None else "Request failed"

    payload: dict = {"error": _error_code(exc.status_code), "message": message}
    if details:
        payload["details"] = details
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    # ctx may carry the raised exception object, which is not JSON-serializable.
    errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": jsonable_encoder(errors)},
        },
    )


def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):  # noqa: ARG001
    return JSONResponse(
        status_code=429,
        content={"error": "RATE_LIMITED", "message": "Too many requests"},
    )


def create_app(
    database: Optional[Database] = None,
    object_store: Optional[ObjectStore] = None,
) -> FastAPI:
    """
    Composition root. Builds the database handle, the certificate store and the
    certification service once and hangs them off app.state for the request
    dependencies to pick up. Tests pass their own database and store.

    Nothing is built at import time; serve it with
    `uvicorn --factory app.main:create_app`.
    """
    configure_logging()

    if database is None:
        database = Database(settings.database_url)
    if object_store is None:
        object_store = build_object_store(settings)
    if database.is_sqlite:
        # Local SQLite databases are created in place; PostgreSQL goes through Alembic.
        database.create_all()

    repository = SqlAlchemyCertificationRepository(
        database.session_factory,
        serialize=database.is_sqlite,
    )
    coordinator = BatchUploadCoordinator(
        object_store,
        repository,
        default_workers=settings.BATCH_DEFAULT_WORKERS,
        max_file_bytes=settings.MAX_UPLOAD_BYTES,
    )

    app = FastAPI(title="Portfolio Backend", version=API_VERSION)
    app.state.database = database
    app.state.object_store = object_store
    app.state.certification_service = CertificationService(repository, object_store, coordinator)

    logger.info(
        "Startup config: ENV=%s database=%s storage=%s rate_limiting=%s",
        settings.ENV,
        database.engine.dialect.name,
        settings.STORAGE_BACKEND,
        settings.ENABLE_RATE_LIMITING,
    )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    if settings.ENABLE_RATE_LIMITING:
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(experiences_router)
    app.include_router(projects_router)
    app.include_router(certifications_router)
    app.include_router(certification_files_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "message": "Server is running"}

    @app.get("/api/v1/health")
    def api_health_check():
        return {"status": "ok", "message": "Server is running", "version": API_VERSION}

    return app
