from src.slab.redaction.reconstruct import (
    NO_TRANSCRIPT,
    is_redacted,
    reconstruct_redacted_text,
    transcript_text,
    words_from_payload,
)
from src.slab.redaction.types import PIIMatch, Word


def _words():
    return [
        Word("call", 0, 400),
        Word("me", 400, 600),
        Word("at", 600, 800),
        Word("555-123-4567", 800, 1600),
        Word("today", 1600, 2000),
    ]


def test_overlapping_words_are_masked():
    text = reconstruct_redacted_text(_words(), [PIIMatch(900, 1200, "phone")])
    assert text == "call me at [REDACTED] today"


def test_match_spanning_several_words_masks_each():
    text = reconstruct_redacted_text(_words(), [PIIMatch(500, 1700)])
    assert text.split(" ") == ["call", "[REDACTED]", "[REDACTED]", "[REDACTED]", "[REDACTED]"]


def test_word_equal_to_match_span_is_masked():
    assert is_redacted(Word("x", 100, 200), [PIIMatch(100, 200)])


def test_touching_boundaries_do_not_overlap():
    matches = [PIIMatch(400, 600)]
    assert not is_redacted(Word("call", 0, 400), matches)
    assert not is_redacted(Word("at", 600, 800), matches)


def test_zero_length_word_is_never_masked():
    words = [Word("um", 500, 500), Word("secret", 400, 700)]
    text = reconstruct_redacted_text(words, [PIIMatch(0, 1000)])
    assert text == "um [REDACTED]"


def test_zero_length_match_never_masks():
    words = [Word("secret", 400, 700)]
    assert reconstruct_redacted_text(words, [PIIMatch(500, 500)]) == "secret"


def test_malformed_spans_do_not_raise():
    words = [Word("backwards", 900, 100), Word("", 100, 200)]
    text = reconstruct_redacted_text(words, [PIIMatch(800, 200)])
    assert text == "backwards "


def test_empty_matches_join_word_texts():
    assert reconstruct_redacted_text(_words(), []) == "call me at 555-123-4567 today"


def test_empty_matches_prefer_raw_text():
    assert reconstruct_redacted_text(_words(), [], text="raw text") == "raw text"


def test_empty_words_fall_back_to_text_or_placeholder():
    matches = [PIIMatch(0, 10)]
    assert reconstruct_redacted_text([], matches, text="raw") == "raw"
    assert reconstruct_redacted_text([], matches) == NO_TRANSCRIPT


def test_upstream_redacted_text_is_returned_verbatim():
    text = reconstruct_redacted_text(
        _words(), [PIIMatch(0, 5000)], redacted_text="call me at ####"
    )
    assert text == "call me at ####"


def test_custom_marker():
    text = reconstruct_redacted_text(_words(), [PIIMatch(900, 1000)], marker="***")
    assert "***" in text
    assert "555-123-4567" not in text


def test_words_from_payload_accepts_word_key_and_skips_junk():
    words = words_from_payload(
        [{"word": "hello", "start": 0, "end": 10}, "junk", {"text": "there", "start": "10", "end": None}]
    )
    assert [w.text for w in words] == ["hello", "there"]
    assert words[1].start == 10.0
    assert words[1].end == 0.0


def test_transcript_text_reconstructs_stored_payload():
    payload = {
        "text": "my email is jane@example.com",
        "words": [
            {"word": "my", "start": 0, "end": 100},
            {"word": "email", "start": 100, "end": 300},
            {"word": "is", "start": 300, "end": 400},
            {"word": "jane@example.com", "start": 400, "end": 1200},
        ],
        "pii_matches": [{"start": 400, "end": 1200, "label": "email"}],
    }
    assert transcript_text(payload) == "my email is [REDACTED]"


def test_transcript_text_missing_match_bound_reads_as_zero():
    payload = {
        "text": "raw",
        "words": [{"word": "hello", "start": 0, "end": 100}],
        "pii_matches": [{"start": 0}],
    }
    # end defaults to 0, so nothing overlaps
    assert transcript_text(payload) == "hello"


def test_transcript_text_fallbacks():
    assert transcript_text(None) == NO_TRANSCRIPT
    assert transcript_text({}) == NO_TRANSCRIPT
    assert transcript_text({"redacted_text": "done"}) == "done"
    assert transcript_text({"text": "plain", "words": []}) == "plain"
    utterances = {"utterances": [{"speaker": "A", "text": "hi"}, {"speaker": "B", "text": "hey"}]}
    assert transcript_text(utterances) == "Speaker A: hi\n\nSpeaker B: hey"
    assert transcript_text({"words": "not-a-list", "pii_matches": None}) == NO_TRANSCRIPT


def test_zero_length_spans_are_ignored_by_the_overlap_check():
    assert not is_redacted(Word("um", 500, 500), [PIIMatch(0, 1000)])
    assert not is_redacted(Word("secret", 400, 700), [PIIMatch(500, 500)])
    assert is_redacted(Word("secret", 400, 700), [PIIMatch(500, 500), PIIMatch(650, 800)])
    assert not is_redacted(Word("odd", 700, 400), [PIIMatch(0, 1000)])
