"""Regex PII detection over transcribed words, plus range post-processing."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from .types import PIIMatch, Word

LOGGER = logging.getLogger("slab.redaction")

PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE),
    # Needs separators or parentheses so bare digit runs (timestamps) do not match.
    "phone": re.compile(r"\b(?:\+?1[\s.-]?)?(?:\(?\d{3}\)?[\s.-]\d{3}[\s.-]\d{4})\b"),
    "ssn": re.compile(r"\b\d{3}[- ]\d{2}[- ]\d{4}\b"),
    "credit_card": re.compile(
        r"\b(?:4\d{3}|5[1-5]\d{2}|37\d{2}|6\d{3})[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"
    ),
    "url": re.compile(r"\bhttps?://[^\s]+", re.IGNORECASE),
    "address": re.compile(
        r"\b(?!(?:19|20)\d{2}\b)\d{1,6}\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
        r"(?:\s+(?:st|street|ave|avenue|blvd|boulevard|rd|road|dr|drive|ln|lane|ct|court"
        r"|cir|circle|way|pkwy|parkway|terrace|ter|pl|place))?\b",
        re.IGNORECASE,
    ),
    "city_state": re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*,\s*[A-Z]{2}(?:\s+\d{5}(?:-\d{4})?)?\b"),
}

ALIASES: dict[str, set[str]] = {
    "phone": {"phone", "phone_number", "phone-number", "phone number"},
    "credit_card": {"credit_card", "credit card", "credit_card_number", "credit card number"},
    "address": {"address", "location", "location_address", "location address"},
    "person_name": {"person_name", "name", "person name"},
    "email": {"email", "email_address", "email address"},
    "ssn": {"ssn", "social_security", "us_social_security_number"},
    "url": {"url", "link"},
}

# Checked in this order; the first hit wins for a single word.
SINGLE_WORD_FIELDS = ("email", "phone", "ssn", "credit_card", "url", "address")

_NAMEISH = re.compile(r"[A-Z][a-z]{2,}")
_STREET_NUMBER = re.compile(r"\d{1,6}")
_CARD_PREFIXES = {"3", "4", "5", "6"}

PHONE_WINDOW = 6
PHONE_MAX_CHARS = 30
CARD_WINDOW = 12
CARD_MAX_CHARS = 50
ADDRESS_WINDOW = 6


def wants_field(field: str, pii_fields: str) -> bool:
    """Whether a comma separated field selection (or ``all``) covers ``field``."""

    config = (pii_fields or "all").strip().lower()
    if config == "all":
        return True
    parts = {part.strip() for part in config.split(",") if part.strip()}
    return bool(parts & ALIASES.get(field, {field}))


def detect_pii_matches(words: Sequence[Word], pii_fields: str = "all") -> list[PIIMatch]:
    if not words:
        return []

    matches: list[PIIMatch] = []
    for word in words:
        value = (word.text or "").strip()
        if not value:
            continue
        for field in SINGLE_WORD_FIELDS:
            if wants_field(field, pii_fields) and PATTERNS[field].search(value):
                matches.append(PIIMatch(word.start, word.end, field))
                break

    if wants_field("person_name", pii_fields):
        matches.extend(_scan_names(words))
    if wants_field("phone", pii_fields):
        matches.extend(_scan_phones(words))
    if wants_field("credit_card", pii_fields):
        matches.extend(_scan_cards(words))
    if wants_field("address", pii_fields):
        matches.extend(_scan_addresses(words))

    return list(dict.fromkeys(matches))


def _scan_names(words: Sequence[Word]) -> Iterable[PIIMatch]:
    idx = 0
    while idx < len(words) - 1:
        first, second = words[idx], words[idx + 1]
        if _NAMEISH.fullmatch(first.text or "") and _NAMEISH.fullmatch(second.text or ""):
            yield PIIMatch(first.start, second.end, "person_name")
            idx += 1
        idx += 1


def _scan_phones(words: Sequence[Word]) -> Iterable[PIIMatch]:
    idx = 0
    while idx < len(words):
        combined = ""
        end = words[idx].end
        for offset in range(min(PHONE_WINDOW, len(words) - idx)):
            segment = (words[idx + offset].text or "").strip()
            if segment:
                combined = f"{combined} {segment}" if combined else segment
                end = words[idx + offset].end
            if PATTERNS["phone"].search(combined):
                yield PIIMatch(words[idx].start, end, "phone")
                idx += offset
                break
            if len(combined) > PHONE_MAX_CHARS:
                break
        idx += 1


def _scan_cards(words: Sequence[Word]) -> Iterable[PIIMatch]:
    idx = 0
    while idx < len(words):
        combined = ""
        end = words[idx].end
        groups: list[str] = []
        for offset in range(min(CARD_WINDOW, len(words) - idx)):
            segment = (words[idx + offset].text or "").strip()
            if segment:
                combined = f"{combined} {segment}" if combined else segment
                end = words[idx + offset].end
            digits = re.sub(r"\D", "", segment)
            if 3 <= len(digits) <= 4:
                groups.append(digits)
            if PATTERNS["credit_card"].search(combined) or (
                len(groups) == 4
                and all(len(group) == 4 for group in groups)
                and groups[0][0] in _CARD_PREFIXES
            ):
                yield PIIMatch(words[idx].start, end, "credit_card")
                idx += offset
                break
            if len(combined) > CARD_MAX_CHARS or len(groups) > 5:
                break
        idx += 1


def _scan_addresses(words: Sequence[Word]) -> Iterable[PIIMatch]:
    idx = 0
    while idx < len(words):
        first = (words[idx].text or "").strip()
        if not _STREET_NUMBER.fullmatch(first):
            idx += 1
            continue
        number = int(first)
        if 1900 <= number <= 2099 or number > 99999:
            idx += 1
            continue
        combined = ""
        end = words[idx].end
        for offset in range(min(ADDRESS_WINDOW, len(words) - idx)):
            segment = (words[idx + offset].text or "").strip()
            if segment:
                combined = f"{combined} {segment}" if combined else segment
                end = words[idx + offset].end
            if PATTERNS["address"].search(combined) or PATTERNS["city_state"].search(combined):
                yield PIIMatch(words[idx].start, end, "address")
                idx += offset
                break
        idx += 1


def merge_ranges(
    matches: Sequence[PIIMatch], *, max_ranges: int = 180, max_gap_ms: float = 2000.0
) -> list[PIIMatch]:
    """Merge overlapping spans, then coalesce near neighbours while there are too many."""

    if not matches:
        return []
    merged: list[PIIMatch] = []
    for match in sorted(matches, key=lambda item: item.start):
        if merged and match.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = PIIMatch(last.start, max(last.end, match.end), last.label)
        else:
            merged.append(match)

    coalesced = merged
    while len(coalesced) > max_ranges:
        pending: list[PIIMatch] = []
        idx = 0
        while idx < len(coalesced):
            first = coalesced[idx]
            second = coalesced[idx + 1] if idx + 1 < len(coalesced) else None
            if second is not None and second.start - first.end <= max_gap_ms:
                pending.append(PIIMatch(first.start, second.end, "pii"))
                idx += 2
            else:
                pending.append(first)
                idx += 1
        if len(pending) == len(coalesced):
            break
        coalesced = pending
    return coalesced


def validate_pii_ranges(matches: Sequence[PIIMatch], duration_ms: float) -> list[PIIMatch]:
    """Drop spans that are empty or outside the recording and clamp the rest."""

    if not matches or duration_ms <= 0:
        return list(matches)
    validated: list[PIIMatch] = []
    for match in matches:
        if match.start < 0 or match.end < 0 or match.start >= match.end:
            LOGGER.warning("Skipping invalid PII range %s-%s", match.start, match.end)
            continue
        if match.start >= duration_ms:
            LOGGER.warning(
                "Skipping PII range beyond duration %s-%s (duration %s)",
                match.start,
                match.end,
                duration_ms,
            )
            continue
        end = min(match.end, duration_ms)
        if end != match.end:
            LOGGER.info("Clamping PII range end %s -> %s", match.end, end)
        validated.append(PIIMatch(match.start, end, match.label))
    return validated


def count_pii_in_window(matches: Iterable[PIIMatch], start: float, end: float) -> int:
    return sum(1 for match in matches if match.start < end and match.end > start)


__all__ = [
    "count_pii_in_window",
    "detect_pii_matches",
    "merge_ranges",
    "validate_pii_ranges",
    "wants_field",
]
