from __future__ import annotations

import os

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})

INVALID_FILE_TYPE_MESSAGE = "invalid file type: only JPG, JPEG, PNG, and WEBP images are allowed"


def file_extension(filename: str | None) -> str:
    """
    Lower-cased extension including the dot ("" when there is none).
    """
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def is_allowed_file(filename: str | None) -> bool:
    return file_extension(filename) in ALLOWED_EXTENSIONS
