"""Transcript redaction endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..deps.rate_limit import enforce_rate_limit
from ..metrics import PII_MATCHES_DETECTED, REDACTED_WORDS
from ..redaction.detect import (
    count_pii_in_window,
    detect_pii_matches,
    merge_ranges,
    validate_pii_ranges,
)
from ..redaction.reconstruct import is_redacted, reconstruct_redacted_text, transcript_text
from ..schemas import (
    DetectRequest,
    DetectResponse,
    PIIMatchModel,
    RedactRequest,
    RedactResponse,
    RenderResponse,
)
from ..settings import APISettings, get_settings

router = APIRouter(prefix="/v1/transcripts", tags=["transcripts"])

LOGGER = logging.getLogger("slab.api")


@router.post(
    "/redact",
    response_model=RedactResponse,
    dependencies=[Depends(enforce_rate_limit("transcript-view"))],
)
async def redact_transcript(
    payload: RedactRequest,
    settings: APISettings = Depends(get_settings),
):
    words = [item.to_word() for item in payload.words]
    matches = [item.to_match() for item in payload.pii_matches]
    text = reconstruct_redacted_text(
        words,
        matches,
        redacted_text=payload.redacted_text,
        text=payload.text,
        marker=settings.redaction_marker,
    )
    redacted = sum(1 for word in words if is_redacted(word, matches)) if matches else 0
    if redacted:
        REDACTED_WORDS.inc(redacted)
    return RedactResponse(text=text, redacted_words=redacted, total_words=len(words))


@router.post(
    "/render",
    response_model=RenderResponse,
    dependencies=[Depends(enforce_rate_limit("transcript-view"))],
)
async def render_transcript(
    payload: Dict[str, Any] = Body(...),
    settings: APISettings = Depends(get_settings),
):
    return RenderResponse(text=transcript_text(payload, marker=settings.redaction_marker))


@router.post(
    "/detect-pii",
    response_model=DetectResponse,
    dependencies=[Depends(enforce_rate_limit("process-audio"))],
)
async def detect_pii(
    payload: DetectRequest,
    settings: APISettings = Depends(get_settings),
):
    words = [item.to_word() for item in payload.words]
    matches = detect_pii_matches(words, payload.pii_fields or settings.pii_fields)
    duration = payload.duration_ms
    if duration is None and words:
        duration = words[-1].end
    if duration:
        matches = validate_pii_ranges(matches, duration)
    for match in matches:
        PII_MATCHES_DETECTED.labels(label=match.label).inc()
    LOGGER.info("Detected %d PII spans across %d words", len(matches), len(words))
    return DetectResponse(
        matches=[PIIMatchModel.from_match(match) for match in matches],
        merged=[PIIMatchModel.from_match(match) for match in merge_ranges(matches)],
        redacted_text=reconstruct_redacted_text(words, matches, marker=settings.redaction_marker),
        conversation_pii_counts=[
            count_pii_in_window(matches, window.start, window.end) for window in payload.conversations
        ],
    )
