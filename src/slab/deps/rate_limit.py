"""Quota enforcement for route families."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, HTTPException, Request, Response, status

from ..metrics import RATE_LIMIT_DECISIONS
from ..ratelimit.store import RateLimitResult, RateLimitStore
from ..settings import APISettings, get_settings
from .auth import get_user_id

LOGGER = logging.getLogger("slab.api")


def get_rate_limit_store(request: Request) -> RateLimitStore:
    return request.app.state.rate_limits


def subject_key(scope: str, user_id: str) -> str:
    return f"{scope}:{user_id}"


def rate_limit_headers(result: RateLimitResult, limit: int) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": format_reset(result.reset_at),
    }
    if result.retry_after is not None:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def format_reset(reset_at_ms: float) -> str:
    moment = datetime.fromtimestamp(reset_at_ms / 1000.0, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def enforce_rate_limit(scope: str) -> Callable[..., RateLimitResult]:
    """Build a dependency that consumes one ``scope`` slot for the caller."""

    def dependency(
        response: Response,
        user_id: str = Depends(get_user_id),
        settings: APISettings = Depends(get_settings),
        store: RateLimitStore = Depends(get_rate_limit_store),
    ) -> RateLimitResult:
        limit, window_ms = settings.quota(scope)
        result = store.check(subject_key(scope, user_id), limit, window_ms)
        headers = rate_limit_headers(result, limit)
        if not result.allowed:
            RATE_LIMIT_DECISIONS.labels(scope=scope, decision="deny").inc()
            LOGGER.info("Rate limit hit scope=%s user=%s retry_after=%s", scope, user_id, result.retry_after)
            minutes = math.ceil((result.retry_after or 0) / 60)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": (
                        "Too many requests. Please try again in "
                        f"{minutes} minute{'' if minutes == 1 else 's'}."
                    ),
                    "retry_after": result.retry_after,
                },
                headers=headers,
            )
        RATE_LIMIT_DECISIONS.labels(scope=scope, decision="allow").inc()
        response.headers.update(headers)
        return result

    return dependency
