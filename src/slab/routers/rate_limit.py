"""Quota inspection and admin reset."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..deps.auth import get_user_id, require_admin
from ..deps.rate_limit import get_rate_limit_store, rate_limit_headers, subject_key
from ..ratelimit.store import RateLimitStore
from ..schemas import RateLimitStatusResponse
from ..settings import RATE_LIMIT_SCOPES, APISettings, get_settings

router = APIRouter(prefix="/v1/rate-limit", tags=["rate-limit"])

LOGGER = logging.getLogger("slab.api")


def _validate_scope(scope: str) -> str:
    if scope not in RATE_LIMIT_SCOPES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown scope: {scope}")
    return scope


@router.get("/status", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    response: Response,
    scope: str = Query("process-audio"),
    user_id: str = Depends(get_user_id),
    settings: APISettings = Depends(get_settings),
    store: RateLimitStore = Depends(get_rate_limit_store),
):
    scope = _validate_scope(scope)
    limit, window_ms = settings.quota(scope)
    result = store.status(subject_key(scope, user_id), limit, window_ms)
    response.headers.update(rate_limit_headers(result, limit))
    return RateLimitStatusResponse(
        scope=scope,
        allowed=result.allowed,
        limit=limit,
        remaining=result.remaining,
        reset_at=datetime.fromtimestamp(result.reset_at / 1000.0, tz=timezone.utc),
        retry_after=result.retry_after,
    )


@router.delete("/{scope}/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_rate_limit(
    scope: str,
    user_id: str,
    _: str = Depends(require_admin),
    store: RateLimitStore = Depends(get_rate_limit_store),
):
    scope = _validate_scope(scope)
    store.reset(subject_key(scope, user_id))
    LOGGER.info("Rate limit reset scope=%s user=%s", scope, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
