from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol

import boto3

from app.core.config import Settings

logger = logging.getLogger(__name__)

_COPY_CHUNK_BYTES = 1024 * 1024


class ObjectStore(Protocol):
    """
    Byte-blob persistence keyed by opaque names the caller generates.
    """

    def save(self, name: str, stream: BinaryIO, content_type: str | None = None) -> None:
        ...

    def delete(self, name: str) -> None:
        ...


class InvalidObjectName(ValueError):
    pass


def _check_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned or cleaned in {".", ".."} or "/" in cleaned or "\\" in cleaned:
        raise InvalidObjectName(f"invalid object name: {name!r}")
    return cleaned


class LocalObjectStore:
    """
    Stores objects as files directly under one directory. Shared by every worker and
    every batch; uniqueness of the generated names is what keeps writers apart.
    """

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.root / _check_name(name)

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except InvalidObjectName:
            return False

    def save(self, name: str, stream: BinaryIO, content_type: str | None = None) -> None:
        path = self.path_for(name)
        if hasattr(stream, "seek"):
            stream.seek(0)
        try:
            # "xb": never overwrite another job's file
            with open(path, "xb") as dst:
                shutil.copyfileobj(stream, dst, _COPY_CHUNK_BYTES)
        except FileExistsError:
            raise
        except Exception:
            path.unlink(missing_ok=True)
            raise

    def delete(self, name: str) -> None:
        self.path_for(name).unlink()


class S3ObjectStore:
    def __init__(self, client, bucket: str, prefix: str = "") -> None:
        if not bucket:
            raise ValueError("S3 bucket name is required")
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def key_for(self, name: str) -> str:
        name = _check_name(name)
        return f"{self.prefix}/{name}" if self.prefix else name

    def save(self, name: str, stream: BinaryIO, content_type: str | None = None) -> None:
        if hasattr(stream, "seek"):
            stream.seek(0)
        extra: dict[str, str] = {}
        if content_type:
            extra["ContentType"] = content_type
        self.client.upload_fileobj(stream, self.bucket, self.key_for(name), ExtraArgs=extra or None)

    def delete(self, name: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=self.key_for(name))

    def presign_download(self, name: str) -> str:
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": self.key_for(name)},
            ExpiresIn=60 * 10,  # 10 minutes
        )


def build_object_store(settings: Settings) -> ObjectStore:
    backend = (settings.STORAGE_BACKEND or "local").strip().lower()
    if backend == "s3":
        client = boto3.client("s3", region_name=settings.AWS_REGION or None)
        logger.info("Certificate storage: S3 bucket %s prefix=%s", settings.S3_BUCKET_NAME, settings.S3_PREFIX)
        return S3ObjectStore(client, settings.S3_BUCKET_NAME, settings.S3_PREFIX)
    if backend != "local":
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {backend}")
    logger.info("Certificate storage: local directory %s", settings.UPLOAD_DIR)
    return LocalObjectStore(settings.UPLOAD_DIR)
