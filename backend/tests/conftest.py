from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
import importlib

from app.core.base import Base
from app.core import config as app_config
from app.core.database import Database
from app.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from app.models.auth_session import AuthSession  # noqa: F401
from app.models.certification import Certification  # noqa: F401
from app.models.experience import Experience  # noqa: F401
from app.models.project import Project  # noqa: F401
from app.models.user import User

from app.dependencies.auth import get_current_user
from app.services import object_store as object_store_module
from app.services.object_store import LocalObjectStore

TEST_PASSWORD = "test_password_123"


class FakeS3Client:
    """
    Records calls instead of talking to AWS. Objects live in a dict keyed by
    (bucket, key).
    """

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.extra_args: dict[tuple[str, str], dict] = {}
        self.deleted: list[tuple[str, str]] = []

    def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None):  # noqa: N803
        self.objects[(Bucket, Key)] = Fileobj.read()
        self.extra_args[(Bucket, Key)] = dict(ExtraArgs or {})

    def delete_object(self, Bucket, Key):  # noqa: N803
        self.objects.pop((Bucket, Key), None)
        self.deleted.append((Bucket, Key))
        return {"ok": True}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):  # noqa: N803
        key = Params.get("Key", "")
        return f"https://example.invalid/presigned/{ClientMethod}?key={key}&expires={ExpiresIn}"


@pytest.fixture(scope="session")
def database():
    # In-memory SQLite shared by every thread (request handlers and upload workers).
    db = Database("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def db_session(database):
    # Important: because we use an in-memory SQLite DB with StaticPool, the DB
    # persists across tests. Reset schema per test to avoid cross-test coupling.
    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)

    db = database.session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture()
def object_store(upload_dir):
    return LocalObjectStore(upload_dir)


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    """
    Stub boto3 inside the object store module so tests never require AWS creds/network.
    """
    client = FakeS3Client()
    monkeypatch.setattr(
        object_store_module,
        "boto3",
        SimpleNamespace(client=lambda *args, **kwargs: client),
    )
    return client


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings (app_config.settings.*). Because that object is
    process-global, we must restore values after each test to avoid cross-test coupling.
    """
    keys = [
        "MAX_UPLOAD_BYTES",
        "ENABLE_RATE_LIMITING",
        "PUBLIC_BASE_URL",
        "STORAGE_BACKEND",
        "S3_BUCKET_NAME",
        "S3_PREFIX",
        "SESSION_DURATION_HOURS",
        "BATCH_DEFAULT_WORKERS",
        "BATCH_MAX_WORKERS",
        "BATCH_SMALL_MAX_FILES",
        "BATCH_SMALL_TIMEOUT_SECONDS",
        "BATCH_LARGE_TIMEOUT_SECONDS",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)
        # Default all tests to "rate limiting disabled" unless a test explicitly reloads routes with it enabled.
        app_config.settings.ENABLE_RATE_LIMITING = False


@pytest.fixture()
def app(database, db_session, object_store):
    # Default to disabled for the general test suite.
    app_config.settings.ENABLE_RATE_LIMITING = False
    app_config.settings.PUBLIC_BASE_URL = "http://testserver"

    # IMPORTANT:
    # SlowAPI decorators bind at import time, so we reload the routes + app with rate limiting disabled
    # to avoid cross-test contamination (the rate limiting test reloads modules with it enabled).
    import app.routes.auth as auth_routes
    import app.routes.certifications as certification_routes
    import app.main as main

    importlib.reload(auth_routes)
    importlib.reload(certification_routes)
    importlib.reload(main)

    fastapi_app = main.create_app(database=database, object_store=object_store)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def user(db_session):
    """
    The single admin account; there is no sign-up endpoint.
    """
    u = User(
        email="admin@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        is_active=True,
    )
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture()
def anon_client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def client(app, user):
    """
    Default client authenticated as the admin user.
    """
    app.dependency_overrides[get_current_user] = lambda: user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def login(anon_client, user):
    """
    Log in through the real endpoint so the session cookie is on the client.

    Usage:
        res = login()
    """

    def _login(email: str = "admin@example.com", password: str = TEST_PASSWORD):
        return anon_client.post("/api/v1/auth/login", json={"email": email, "password": password})

    return _login

