"""Pydantic schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .redaction.types import PIIMatch, Word


class WordIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(default="", validation_alias=AliasChoices("text", "word"))
    start: float = 0.0
    end: float = 0.0

    def to_word(self) -> Word:
        return Word(text=self.text, start=self.start, end=self.end)


class PIIMatchModel(BaseModel):
    start: float = 0.0
    end: float = 0.0
    label: str = "pii"

    def to_match(self) -> PIIMatch:
        return PIIMatch(start=self.start, end=self.end, label=self.label)

    @classmethod
    def from_match(cls, match: PIIMatch) -> "PIIMatchModel":
        return cls(start=match.start, end=match.end, label=match.label)


class RedactRequest(BaseModel):
    words: List[WordIn] = Field(default_factory=list)
    pii_matches: List[PIIMatchModel] = Field(default_factory=list)
    text: Optional[str] = None
    redacted_text: Optional[str] = None


class RedactResponse(BaseModel):
    text: str
    redacted_words: int
    total_words: int


class RenderResponse(BaseModel):
    text: str


class TimeWindow(BaseModel):
    start: float
    end: float


class DetectRequest(BaseModel):
    words: List[WordIn] = Field(default_factory=list)
    pii_fields: Optional[str] = None
    duration_ms: Optional[float] = None
    conversations: List[TimeWindow] = Field(default_factory=list)


class DetectResponse(BaseModel):
    matches: List[PIIMatchModel]
    merged: List[PIIMatchModel]
    redacted_text: str
    conversation_pii_counts: List[int] = Field(default_factory=list)


class RateLimitStatusResponse(BaseModel):
    scope: str
    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after: Optional[int] = None


class HealthResponse(BaseModel):
    ok: bool
    rate_limit_entries: int
    sweeper: str
    timestamp: datetime


class WelcomeResponse(BaseModel):
    name: str
    version: str
    docs: str
    endpoints: Dict[str, Any] = Field(default_factory=dict)
