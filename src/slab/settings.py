"""API settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field


class APISettings(BaseModel):
    app_name: str = Field(default="Slab Transcript API")
    version: str = Field(default="1.0.0")
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))
    api_keys: List[str] = Field(default_factory=lambda: _split_keys("API_KEYS", "API_KEY"))
    admin_api_keys: List[str] = Field(default_factory=lambda: _split_keys("ADMIN_API_KEYS"))
    redaction_marker: str = Field(default=os.getenv("REDACTION_MARKER", "[REDACTED]"))
    pii_fields: str = Field(default=os.getenv("PII_FIELDS", "all"))
    process_audio_rate_limit: int = Field(
        default=int(os.getenv("PROCESS_AUDIO_RATE_LIMIT", "10"))
    )
    process_audio_window_ms: int = Field(
        default=int(os.getenv("PROCESS_AUDIO_WINDOW_MS", str(60 * 60 * 1000)))
    )
    transcript_view_rate_limit: int = Field(
        default=int(os.getenv("TRANSCRIPT_VIEW_RATE_LIMIT", "100"))
    )
    transcript_view_window_ms: int = Field(
        default=int(os.getenv("TRANSCRIPT_VIEW_WINDOW_MS", str(60 * 60 * 1000)))
    )
    rate_limit_sweep_sec: float = Field(
        default=float(os.getenv("RATE_LIMIT_SWEEP_SEC", "300"))
    )

    def quota(self, scope: str) -> tuple[int, int]:
        """Return ``(limit, window_ms)`` for a rate limit scope."""

        prefix = scope.replace("-", "_")
        try:
            limit = getattr(self, f"{prefix}_rate_limit")
            window_ms = getattr(self, f"{prefix}_window_ms")
        except AttributeError:
            raise KeyError(f"Unknown rate limit scope: {scope}") from None
        return int(limit), int(window_ms)


RATE_LIMIT_SCOPES = ("process-audio", "transcript-view")


def _split_keys(*names: str) -> List[str]:
    raw = ""
    for name in names:
        raw = os.getenv(name) or ""
        if raw:
            break
    return [key.strip() for key in raw.split(",") if key.strip()]


@lru_cache()
def get_settings() -> APISettings:
    return APISettings()
