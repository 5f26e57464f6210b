"""Rate limiting configuration for the back-office API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from backoffice.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

# Single-process deployment: in-memory counters are sufficient
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=DEFAULT_LIMITS,
    enabled=not IS_TESTING,
)


def auth_rate_limit() -> str:
    """Limit string for login attempts."""
    return f"{settings.RATE_LIMIT_AUTH}/minute"
