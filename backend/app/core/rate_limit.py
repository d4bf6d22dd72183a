from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# One limiter per process, keyed by client IP. Routes opt in through _maybe_limit so
# decorators are only bound when ENABLE_RATE_LIMITING is on at import time.
limiter = Limiter(key_func=get_remote_address, enabled=settings.ENABLE_RATE_LIMITING)
