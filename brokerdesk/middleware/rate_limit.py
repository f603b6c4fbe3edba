from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from brokerdesk.core.auth import extract_token
from brokerdesk.core.config import get_settings
from brokerdesk.core.errors import ErrorCode, error_response


logger = logging.getLogger("brokerdesk.rate_limit")

WINDOW_SECONDS = 60
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class _Bucket:
    tokens: float
    refilled_at: float


@dataclass
class MutationBudget:
    """Token buckets keyed by caller and resource group (``/api/<group>/...``)."""

    _buckets: dict[tuple[str, str], _Bucket] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _pruned_at: float = 0.0

    def spend(self, caller_key: str, group: str, per_minute: int, *, now: float | None = None) -> int:
        """Take one token; returns 0 when allowed, otherwise the seconds to wait."""

        if per_minute <= 0:
            return WINDOW_SECONDS
        rate = per_minute / WINDOW_SECONDS
        now = time.monotonic() if now is None else now
        with self._lock:
            self._prune_idle(now)
            bucket = self._buckets.setdefault((caller_key, group), _Bucket(float(per_minute), now))
            bucket.tokens = min(float(per_minute), bucket.tokens + (now - bucket.refilled_at) * rate)
            bucket.refilled_at = now
            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return 0
            return max(1, math.ceil((1.0 - bucket.tokens) / rate))

    def _prune_idle(self, now: float) -> None:
        # an untouched bucket is full again after one window
        if now - self._pruned_at < WINDOW_SECONDS:
            return
        self._pruned_at = now
        idle = [key for key, bucket in self._buckets.items() if now - bucket.refilled_at >= WINDOW_SECONDS]
        for key in idle:
            del self._buckets[key]

    def __len__(self) -> int:
        return len(self._buckets)

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._pruned_at = 0.0


_budget = MutationBudget()


def route_group(path: str) -> str:
    parts = [part for part in path.split("/") if part]
    return parts[1] if len(parts) > 1 else "api"


def caller_key(request: Request) -> str:
    settings = get_settings()
    extracted = extract_token(request)
    if extracted is not None:
        try:
            subject = jwt.decode(extracted[0], settings.jwt_secret, algorithms=[settings.jwt_algorithm]).get("sub")
        except JWTError:
            subject = None
        if subject:
            return f"user:{subject}"
    if request.client is not None:
        return f"ip:{request.client.host}"
    return "anonymous"


class MutationRateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        settings = get_settings()
        if (
            settings.rate_limit_disabled
            or request.method.upper() not in MUTATING_METHODS
            or not request.url.path.startswith("/api/")
        ):
            return await call_next(request)

        key = caller_key(request)
        group = route_group(request.url.path)
        retry_after = _budget.spend(key, group, settings.rate_limit_mutations_per_minute)
        if not retry_after:
            return await call_next(request)

        logger.warning("rate_limit.exceeded", extra={"resource": group, "decision": "RATE_LIMITED"})
        response = error_response(
            request,
            status_code=429,
            code=ErrorCode.RATE_LIMITED,
            message="Too many requests",
            details={"retryAfter": retry_after},
        )
        response.headers["Retry-After"] = str(retry_after)
        return response


def reset_rate_limiter() -> None:
    _budget.clear()
