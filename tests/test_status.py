"""Tests for verification status classification."""

import pytest

from citeparse.core.status import (
    PARTIAL_STATUSES,
    SEARCH_STATUSES,
    CitationStatus,
    Verification,
    classify,
    get_status_label,
    get_verification_text_indicator,
    is_partial_search_status,
)


# ── Classification ───────────────────────────────────────────────────


@pytest.mark.parametrize("status", ["found", "found_phrase_missed_anchor_text"])
def test_full_matches_verified(status):
    assert classify(Verification(status=status)) == CitationStatus(is_verified=True)


@pytest.mark.parametrize("status", sorted(PARTIAL_STATUSES))
def test_partial_matches(status):
    assert classify({"status": status}) == CitationStatus(is_verified=True, is_partial_match=True)


def test_not_found_is_miss():
    assert classify({"status": "not_found"}) == CitationStatus(is_miss=True)


@pytest.mark.parametrize("verification", [
    {"status": "pending"},
    {"status": "loading"},
    {"status": None},
    {},
    None,
])
def test_pending(verification):
    assert classify(verification) == CitationStatus(is_pending=True)


def test_unknown_status_sets_nothing():
    assert classify({"status": "mystery"}) == CitationStatus()


def test_low_trust_attempt_is_partial():
    verification = {
        "status": "found",
        "search_attempts": [
            {"success": False, "matched_variation": "first_word_only"},
            {"success": True, "matched_variation": "partial_full_phrase"},
        ],
    }
    status = classify(verification)
    assert status.is_verified and status.is_partial_match


def test_failed_low_trust_attempt_ignored():
    verification = {
        "status": "found",
        "search_attempts": [{"success": False, "matched_variation": "first_word_only"}],
    }
    assert not classify(verification).is_partial_match


def test_every_known_status_classifies():
    for status in SEARCH_STATUSES:
        result = classify({"status": status})
        assert sum([result.is_verified, result.is_miss, result.is_pending]) == 1


def test_is_partial_search_status():
    assert is_partial_search_status("first_word_found")
    assert not is_partial_search_status("found")
    assert not is_partial_search_status(None)


# ── Labels & Indicators ──────────────────────────────────────────────


@pytest.mark.parametrize("status,label", [
    ("found", "Verified"),
    ("found_on_other_line", "Partial Match"),
    ("not_found", "Not Found"),
    ("loading", "Verifying..."),
    ("mystery", ""),
])
def test_status_label(status, label):
    assert get_status_label(classify({"status": status})) == label


@pytest.mark.parametrize("status,indicator", [
    ("found", "☑️"),
    ("partial_text_found", "✅"),
    ("not_found", "❌"),
    ("pending", "⌛"),
    ("mystery", "◌"),
])
def test_text_indicator(status, indicator):
    assert get_verification_text_indicator({"status": status}) == indicator


def test_text_indicator_without_verification():
    assert get_verification_text_indicator(None) == "⌛"
