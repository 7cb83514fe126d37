"""Dataclasses shared across redaction helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Word:
    """One transcribed token (millisecond offsets within the recording)."""

    text: str
    start: float
    end: float


@dataclass(slots=True, frozen=True)
class PIIMatch:
    """Detected sensitive span, possibly covering several words."""

    start: float
    end: float
    label: str = "pii"
