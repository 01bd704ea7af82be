"""
Rate limiting for login, registration and payment creation.
In-memory sliding window; one process only.

Anonymous endpoints (login, registration) are keyed by client IP. Payment
creation is keyed by the authenticated user id, so rotating addresses or
forged proxy headers does not buy extra attempts.
"""
import logging
import threading
from datetime import datetime, timezone
from functools import wraps
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Request, HTTPException, status

from config import settings

logger = logging.getLogger(__name__)

_rate_limit_memory: Dict[str, List[float]] = {}
_rate_limit_windows: Dict[str, int] = {}
_rate_limit_lock = threading.Lock()
_last_sweep = 0.0

SWEEP_INTERVAL_SECONDS = 60
MAX_TRACKED_KEYS = 10000

PERIOD_SECONDS = {
    'second': 1,
    'minute': 60,
    'hour': 3600,
    'day': 86400,
}

AUTH_RATE = "10/minute"
PAYMENT_RATE = "5/minute"


def parse_rate(rate: str) -> Tuple[int, int]:
    """Parse "5/minute" into (5, 60)."""
    limit_str, period = rate.split('/')
    return int(limit_str), PERIOD_SECONDS.get(period.strip().lower().rstrip('s'), 60)


def _evict_expired(now: float) -> int:
    """Drop keys whose newest hit has left its window. Caller holds the lock."""
    expired = [
        key for key, hits in _rate_limit_memory.items()
        if not hits or hits[-1] <= now - _rate_limit_windows.get(key, 0)
    ]
    for key in expired:
        _rate_limit_memory.pop(key, None)
        _rate_limit_windows.pop(key, None)
    return len(expired)


def _simple_rate_limit(key: str, limit: int, window: int) -> Tuple[bool, float]:
    """
    Record a hit for key and report whether it is within the window limit.

    Returns:
        (allowed, retry_after_seconds)
    """
    global _last_sweep
    current_time = datetime.now(timezone.utc).timestamp()
    cutoff_time = current_time - window

    with _rate_limit_lock:
        if current_time - _last_sweep >= SWEEP_INTERVAL_SECONDS or len(_rate_limit_memory) >= MAX_TRACKED_KEYS:
            evicted = _evict_expired(current_time)
            _last_sweep = current_time
            if evicted:
                logger.debug(f"🧹 [RATE-LIMITER] Evicted {evicted} idle key(s)")

        hits = [t for t in _rate_limit_memory.get(key, []) if t > cutoff_time]
        _rate_limit_windows[key] = window

        if len(hits) >= limit:
            _rate_limit_memory[key] = hits
            return False, max(0.0, hits[0] + window - current_time)

        hits.append(current_time)
        _rate_limit_memory[key] = hits
        return True, 0.0


def reset_rate_limits() -> None:
    """Forget every recorded hit."""
    global _last_sweep
    with _rate_limit_lock:
        _rate_limit_memory.clear()
        _rate_limit_windows.clear()
        _last_sweep = 0.0


def get_client_ip(request: Request) -> str:
    """
    Client IP. X-Forwarded-For / X-Real-IP are only honoured when
    TRUST_PROXY_HEADERS is set; otherwise any client could pick its own key.
    """
    if settings.trust_proxy_headers:
        forwarded_for = request.headers.get('X-Forwarded-For')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('X-Real-IP')
        if real_ip:
            return real_ip

    return request.client.host if request.client else 'unknown'


def enforce_rate_limit(identity: str, scope: str, rate: str) -> None:
    """
    Count one hit for identity on scope.

    Raises:
        HTTPException: 429 with Retry-After once the rate is used up
    """
    limit_count, window = parse_rate(rate)
    allowed, retry_after = _simple_rate_limit(f"rate_limit:{identity}:{scope}", limit_count, window)
    if not allowed:
        logger.warning(f"🚫 [RATE-LIMITER] {identity} exceeded {rate} on {scope}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded: {rate}",
            headers={
                'X-RateLimit-Limit': str(limit_count),
                'Retry-After': str(int(retry_after) + 1),
            }
        )


def _find_request(args, kwargs) -> Optional[Request]:
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Request):
            return value
    return None


def limit(rate: str):
    """
    Per-IP rate limiting decorator for route handlers.

    The wrapped handler must accept a ``request: Request`` parameter.

    Args:
        rate: Rate limit string (e.g., "5/minute", "100/hour")
    """
    parse_rate(rate)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            if request is not None:
                enforce_rate_limit(get_client_ip(request), func.__name__, rate)
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def auth_limit():
    """Login/registration rate limit decorator."""
    return limit(AUTH_RATE)


def payment_limit(user_id: str) -> None:
    """Payment creation limit, keyed on the verified user rather than the caller's address."""
    enforce_rate_limit(f"user:{user_id}", "create_payment", PAYMENT_RATE)
