import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install one stream handler on the root logger. Safe to call more than once
    (tests build several apps per process).
    """
    root = logging.getLogger()
    resolved = (level or settings.LOG_LEVEL or "INFO").upper()
    root.setLevel(getattr(logging, resolved, logging.INFO))

    if any(getattr(h, "_portfolio_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._portfolio_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
