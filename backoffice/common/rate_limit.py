"""Rate limiting configuration using slowapi.

A module-level Limiter wired into the FastAPI app in main.py through
SlowAPIMiddleware, which applies RATE_LIMIT_DEFAULT to every route keyed
by client IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backoffice.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
