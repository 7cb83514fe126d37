import logging

from src.slab.redaction.detect import (
    count_pii_in_window,
    detect_pii_matches,
    merge_ranges,
    validate_pii_ranges,
    wants_field,
)
from src.slab.redaction.types import PIIMatch, Word


def _words(*tokens: str, step: int = 500) -> list[Word]:
    return [Word(token, idx * step, idx * step + step - 100) for idx, token in enumerate(tokens)]


def test_wants_field_understands_aliases():
    assert wants_field("phone", "all")
    assert wants_field("phone", "Email, phone number")
    assert wants_field("person_name", "name")
    assert not wants_field("ssn", "email,phone")


def test_single_word_email():
    matches = detect_pii_matches(_words("reach", "jane@example.com", "later"))
    assert matches == [PIIMatch(500, 900, "email")]


def test_single_word_phone_is_reported_once():
    matches = detect_pii_matches([Word("555-123-4567", 0, 800)])
    assert matches == [PIIMatch(0, 800, "phone")]


def test_spoken_phone_number_across_words():
    words = [Word("555", 0, 400), Word("123", 500, 900), Word("4567", 1000, 1500)]
    assert detect_pii_matches(words) == [PIIMatch(0, 1500, "phone")]


def test_spoken_card_number_across_words():
    words = _words("4532", "1234", "5678", "9010")
    matches = detect_pii_matches(words)
    assert matches == [PIIMatch(0, 1900, "credit_card")]


def test_name_pairs():
    matches = detect_pii_matches(_words("hi", "John", "Smith", "here"))
    assert matches == [PIIMatch(500, 1400, "person_name")]


def test_field_selection_limits_detectors():
    words = _words("hi", "John", "Smith", "jane@example.com")
    assert [m.label for m in detect_pii_matches(words, "email")] == ["email"]
    assert [m.label for m in detect_pii_matches(words, "name")] == ["person_name"]


def test_street_address_detection_skips_years():
    words = _words("I", "live", "at", "123", "Main", "Street")
    assert detect_pii_matches(words, "address") == [PIIMatch(1500, 2400, "address")]
    assert detect_pii_matches(_words("in", "2008", "Main", "Street"), "address") == []


def test_no_words_no_matches():
    assert detect_pii_matches([]) == []


def test_merge_ranges_merges_overlaps_and_keeps_first_label():
    merged = merge_ranges([PIIMatch(500, 900, "phone"), PIIMatch(0, 600, "email"), PIIMatch(2000, 2100)])
    assert merged == [PIIMatch(0, 900, "email"), PIIMatch(2000, 2100, "pii")]


def test_merge_ranges_coalesces_neighbours_when_over_budget():
    ranges = [PIIMatch(i * 1000, i * 1000 + 500, "email") for i in range(4)]
    merged = merge_ranges(ranges, max_ranges=2)
    assert merged == [PIIMatch(0, 1500, "pii"), PIIMatch(2000, 3500, "pii")]


def test_merge_ranges_stops_when_gaps_are_too_wide():
    ranges = [PIIMatch(i * 10_000, i * 10_000 + 500) for i in range(3)]
    assert merge_ranges(ranges, max_ranges=1) == ranges


def test_validate_pii_ranges_drops_and_clamps(caplog):
    matches = [
        PIIMatch(-5, 10),
        PIIMatch(50, 50),
        PIIMatch(100, 400, "email"),
        PIIMatch(900, 1500, "phone"),
        PIIMatch(1000, 1200),
    ]
    with caplog.at_level(logging.WARNING, logger="slab.redaction"):
        validated = validate_pii_ranges(matches, 1000)
    assert validated == [PIIMatch(100, 400, "email"), PIIMatch(900, 1000, "phone")]
    assert "Skipping" in caplog.text


def test_validate_pii_ranges_without_duration_is_a_noop():
    matches = [PIIMatch(-5, 10)]
    assert validate_pii_ranges(matches, 0) == matches


def test_count_pii_in_window():
    matches = [PIIMatch(0, 100), PIIMatch(100, 200), PIIMatch(500, 600)]
    assert count_pii_in_window(matches, 100, 500) == 1
    assert count_pii_in_window(matches, 0, 1000) == 3
