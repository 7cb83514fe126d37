"""Rebuild display text for redacted transcripts."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .types import PIIMatch, Word

REDACTION_MARKER = "[REDACTED]"
NO_TRANSCRIPT = "No transcript available"


def is_redacted(word: Word, matches: Iterable[PIIMatch]) -> bool:
    """Return True when the word's span strictly overlaps any match.

    Zero-length words and zero-length matches never overlap anything.
    """

    if word.start == word.end:
        return False
    return any(
        match.start != match.end and word.start < match.end and word.end > match.start
        for match in matches
    )


def reconstruct_redacted_text(
    words: Sequence[Word],
    matches: Sequence[PIIMatch],
    *,
    redacted_text: str | None = None,
    text: str | None = None,
    marker: str = REDACTION_MARKER,
) -> str:
    """Join words with a single space, masking every word that overlaps a match.

    Upstream redacted text wins when present. Without words or matches the raw
    text is returned, then the plain word texts, then a placeholder.
    """

    if redacted_text:
        return redacted_text
    if not words or not matches:
        if text:
            return text
        if words:
            return " ".join(word.text or "" for word in words)
        return NO_TRANSCRIPT
    return " ".join(
        marker if is_redacted(word, matches) else (word.text or "") for word in words
    )


def transcript_text(payload: Mapping[str, Any] | None, *, marker: str = REDACTION_MARKER) -> str:
    """Display text for a stored ``transcript_redacted`` object."""

    if not isinstance(payload, Mapping) or not payload:
        return NO_TRANSCRIPT
    redacted = payload.get("redacted_text")
    if isinstance(redacted, str) and redacted:
        return redacted
    words = words_from_payload(payload.get("words"))
    matches = matches_from_payload(payload.get("pii_matches"))
    raw_text = payload.get("text") if isinstance(payload.get("text"), str) else None
    if words and matches:
        return reconstruct_redacted_text(words, matches, marker=marker)
    if raw_text:
        return raw_text
    utterances = payload.get("utterances")
    if isinstance(utterances, list) and utterances:
        lines = [
            f"Speaker {item.get('speaker', '?')}: {item.get('text', '')}"
            for item in utterances
            if isinstance(item, Mapping)
        ]
        if lines:
            return "\n\n".join(lines)
    return reconstruct_redacted_text(words, matches, marker=marker)


def words_from_payload(items: Any) -> list[Word]:
    if not isinstance(items, list):
        return []
    words: list[Word] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        text = item.get("text")
        if text is None:
            text = item.get("word")
        words.append(
            Word(
                text=str(text) if text is not None else "",
                start=_as_number(item.get("start")),
                end=_as_number(item.get("end")),
            )
        )
    return words


def matches_from_payload(items: Any) -> list[PIIMatch]:
    if not isinstance(items, list):
        return []
    matches: list[PIIMatch] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        matches.append(
            PIIMatch(
                start=_as_number(item.get("start")),
                end=_as_number(item.get("end")),
                label=str(item.get("label") or "pii"),
            )
        )
    return matches


def _as_number(value: Any) -> float:
    # Missing or garbled bounds read as 0 so the overlap test simply fails.
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0


__all__ = [
    "NO_TRANSCRIPT",
    "REDACTION_MARKER",
    "is_redacted",
    "matches_from_payload",
    "reconstruct_redacted_text",
    "transcript_text",
    "words_from_payload",
]
