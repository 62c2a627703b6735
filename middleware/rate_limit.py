# middleware/rate_limit.py
"""
slowapi limiter shared by main.py and the routers.

Buckets are per user when a session cookie is present and per client IP
otherwise. Auth and analyze endpoints carry their own tighter limits:

    @router.post("/auth/login")
    @limiter.limit(AUTH_RATE_LIMIT)
    def login(request: Request, response: Response, ...):
        ...
"""
import logging
import os

from fastapi import Request
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from services.auth import SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
AUTH_RATE_LIMIT = os.getenv("RATE_LIMIT_AUTH", "10/minute")
ANALYZE_RATE_LIMIT = os.getenv("RATE_LIMIT_ANALYZE", "10/minute")


def _rate_limit_enabled() -> bool:
    return os.getenv("RATE_LIMIT_ENABLED", "1").lower() in ("1", "true", "yes")


def rate_limit_key(request: Request) -> str:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        # Signature is not checked here; get_current_user does that.
        try:
            sub = jwt.get_unverified_claims(token).get("sub")
        except JWTError:
            logger.debug("rate_limit_key_unreadable_cookie")
            sub = None
        if sub:
            return f"user:{sub}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[DEFAULT_RATE_LIMIT],
    # Redis keeps counters shared across workers; memory is per process
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window",
    enabled=_rate_limit_enabled(),
)
