# app/core/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class Settings:
    def __init__(self) -> None:
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            # Load .env only for non-prod so prod can't be accidentally influenced by local files.
            load_dotenv()

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

        # ----------------------------
        # Database
        # ----------------------------
        # DATABASE_URL wins. Otherwise the DB_* variables describe a PostgreSQL server,
        # and with neither we fall back to a local SQLite file.
        self.DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
        self.DB_HOST = os.getenv("DB_HOST", "")
        self.DB_PORT = os.getenv("DB_PORT", "5432")
        self.DB_NAME = os.getenv("DB_NAME", "")
        self.DB_APP_USER = os.getenv("DB_APP_USER", "")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_SSLMODE = os.getenv("DB_SSLMODE", "require").strip().lower()
        self.SQLITE_PATH = os.getenv("SQLITE_PATH", "./portfolio.db")

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:4321",
            "http://127.0.0.1:4321",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Session cookie auth
        # ----------------------------
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session_id")
        self.SESSION_DURATION_HOURS = int(os.getenv("SESSION_DURATION_HOURS", "2"))
        self.COOKIE_SECURE = str_to_bool(os.getenv("COOKIE_SECURE"), default=False)
        self.COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN", "") or None
        self.COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")

        # ----------------------------
        # Public URLs
        # ----------------------------
        # Empty means "derive from the incoming request".
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/")

        # ----------------------------
        # Certificate storage / batch uploads
        # ----------------------------
        self.STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").strip().lower()  # local | s3
        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads/certifications")
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

        self.AWS_REGION = os.getenv("AWS_REGION", "")
        self.S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME", "")
        self.S3_PREFIX = os.getenv("S3_PREFIX", "certifications")

        self.BATCH_DEFAULT_WORKERS = int(os.getenv("BATCH_DEFAULT_WORKERS", "3"))
        self.BATCH_MAX_WORKERS = int(os.getenv("BATCH_MAX_WORKERS", "20"))
        self.BATCH_SMALL_MAX_FILES = int(os.getenv("BATCH_SMALL_MAX_FILES", "5"))
        self.BATCH_SMALL_TIMEOUT_SECONDS = float(os.getenv("BATCH_SMALL_TIMEOUT_SECONDS", "30"))
        self.BATCH_LARGE_TIMEOUT_SECONDS = float(os.getenv("BATCH_LARGE_TIMEOUT_SECONDS", "300"))

        # ----------------------------
        # Rate limiting
        # ----------------------------
        self.ENABLE_RATE_LIMITING = str_to_bool(os.getenv("ENABLE_RATE_LIMITING", "false"))

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.DATABASE_URL and not self.DB_HOST:
            missing.append("DATABASE_URL")
        if self.DB_HOST and not self.DATABASE_URL:
            if not self.DB_NAME:
                missing.append("DB_NAME")
            if not self.DB_APP_USER:
                missing.append("DB_APP_USER")
            if not self.DB_APP_PASSWORD:
                missing.append("DB_APP_PASSWORD")
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if self.PUBLIC_BASE_URL and not self.PUBLIC_BASE_URL.startswith("https://"):
            raise RuntimeError("PUBLIC_BASE_URL should be https://... in prod")

        if self.STORAGE_BACKEND not in {"local", "s3"}:
            raise RuntimeError(f"Unknown STORAGE_BACKEND: {self.STORAGE_BACKEND}")
        if self.STORAGE_BACKEND == "s3" and not self.S3_BUCKET_NAME:
            missing.append("S3_BUCKET_NAME")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    def _build_postgres_url(self, user: str, password: str) -> str:
        encoded_password = quote_plus(password)
        return (
            f"postgresql+psycopg2://{user}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST:
            return self._build_postgres_url(self.DB_APP_USER, self.DB_APP_PASSWORD)
        return f"sqlite:///{self.SQLITE_PATH}"


settings = Settings()
