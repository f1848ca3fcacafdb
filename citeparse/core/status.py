"""Derive display status flags from an external verification result."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ── Status Vocabulary ────────────────────────────────────────────────

SEARCH_STATUSES = frozenset({
    "found",
    "found_phrase_missed_anchor_text",
    "found_anchor_text_only",
    "partial_text_found",
    "found_on_other_page",
    "found_on_other_line",
    "first_word_found",
    "not_found",
    "pending",
    "loading",
})

PARTIAL_STATUSES = frozenset({
    "found_anchor_text_only",
    "found_on_other_page",
    "found_on_other_line",
    "partial_text_found",
    "first_word_found",
})

_FULL_MATCH_STATUSES = frozenset({"found", "found_phrase_missed_anchor_text"})
_PENDING_STATUSES = frozenset({"pending", "loading"})
_LOW_TRUST_VARIATIONS = frozenset({
    "partial_full_phrase",
    "partial_anchor_text",
    "first_word_only",
})


# ── Models ───────────────────────────────────────────────────────────


class SearchAttempt(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    matched_variation: Optional[str] = None


class Verification(BaseModel):
    """Result returned by the verification service for one citation key."""

    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    search_attempts: list[SearchAttempt] = Field(default_factory=list)


class CitationStatus(BaseModel):
    is_verified: bool = False
    is_partial_match: bool = False
    is_miss: bool = False
    is_pending: bool = False


# ── Classification ───────────────────────────────────────────────────


def is_partial_search_status(status: str | None) -> bool:
    return bool(status) and status in PARTIAL_STATUSES


def classify(verification: Verification | dict | None) -> CitationStatus:
    """Map a verification status onto CitationStatus flags.

    found / found_phrase_missed_anchor_text -> verified
    any partial status (or a successful low-trust search attempt)
        -> verified and partial
    not_found -> miss
    pending / loading, or no verification yet -> pending
    Unknown status strings set no flags.
    """
    if isinstance(verification, dict):
        verification = Verification.model_validate(verification)

    status = verification.status if verification else None
    if not status:
        return CitationStatus(is_pending=True)

    low_trust = any(
        attempt.success and attempt.matched_variation in _LOW_TRUST_VARIATIONS
        for attempt in verification.search_attempts
    )
    is_partial = is_partial_search_status(status) or low_trust

    return CitationStatus(
        is_verified=status in _FULL_MATCH_STATUSES or is_partial,
        is_partial_match=is_partial,
        is_miss=status == "not_found",
        is_pending=status in _PENDING_STATUSES,
    )


def get_status_label(status: CitationStatus) -> str:
    if status.is_verified and not status.is_partial_match:
        return "Verified"
    if status.is_partial_match:
        return "Partial Match"
    if status.is_miss:
        return "Not Found"
    if status.is_pending:
        return "Verifying..."
    return ""


def get_verification_text_indicator(verification: Verification | dict | None) -> str:
    """Single-glyph plain-text indicator for a verification result."""
    status = classify(verification)
    if status.is_miss:
        return "❌"
    if status.is_verified and not status.is_partial_match:
        return "☑️"
    if status.is_partial_match:
        return "✅"
    if status.is_pending:
        return "⌛"
    return "◌"
