from __future__ import annotations

from datetime import date, datetime, timezone

# Day-first formats come before ISO so "02/01/2024" is read as 2 January.
DATE_FORMATS = (
    "%d/%m/%Y",
    "%d/%m/%y",
    "%d-%m-%Y",
    "%d-%m-%y",
    "%Y-%m-%d",
    "%Y/%m/%d",
)


def parse_date(value: str) -> date:
    raw = (value or "").strip()
    if not raw:
        raise ValueError("date string is empty")

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue

    raise ValueError(
        f"unable to parse date '{raw}'. Supported formats: DD/MM/YYYY, DD/MM/YY, "
        "DD-MM-YYYY, DD-MM-YY, YYYY-MM-DD"
    )


def parse_optional_date(value: str | None) -> date | None:
    if value is None or not str(value).strip():
        return None
    return parse_date(value)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()
