"""slowapi limiter shared by the app factory and the auth router."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from hrms.config import settings

# Keyed by client IP; credential endpoints tighten this per route.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.DEFAULT_RATE_LIMIT],
)

LOGIN_LIMIT = settings.LOGIN_RATE_LIMIT
REGISTER_LIMIT = settings.REGISTER_RATE_LIMIT
