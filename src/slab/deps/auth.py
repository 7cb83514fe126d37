"""API key and caller identity dependencies."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from ..settings import APISettings, get_settings


def get_api_key(
    x_api_key: str | None = Header(default=None),
    settings: APISettings = Depends(get_settings),
) -> str:
    if not x_api_key or x_api_key not in settings.api_keys:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return x_api_key


def get_user_id(
    x_user_id: str | None = Header(default=None),
    _: str = Depends(get_api_key),
) -> str:
    """Subject key for quotas; the upstream auth proxy sets ``X-User-Id``."""

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-User-Id header")
    return user_id


def require_admin(
    api_key: str = Depends(get_api_key),
    settings: APISettings = Depends(get_settings),
) -> str:
    if api_key not in settings.admin_api_keys:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API key required")
    return api_key
