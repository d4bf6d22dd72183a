from __future__ import annotations

from datetime import date
from typing import Annotated

from pydantic import AfterValidator, Field, HttpUrl, TypeAdapter, ValidationError

from app.core.dates import parse_date

_http_url = TypeAdapter(HttpUrl)


def coerce_date(value):
    """
    Accept a date or any supported date string; "" and None mean "no date".
    """
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        return parse_date(value)
    raise ValueError("date must be a string")


def blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return value


def _require_http_url(value: str) -> str:
    # pydantic parses it; the caller's text is what gets stored
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL")
    return value


WebUrl = Annotated[str, Field(max_length=500), AfterValidator(_require_http_url)]
