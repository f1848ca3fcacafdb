"""Attribute names of the <cite /> tag dialect and an escape-aware extractor."""

import re
from functools import lru_cache

# ── Alias Table ──────────────────────────────────────────────────────

# Canonical name -> every spelling models are known to emit (first is canonical).
ATTRIBUTE_ALIASES: dict[str, tuple[str, ...]] = {
    "attachment_id": ("attachment_id", "attachmentId", "file_id", "fileId"),
    "start_page_id": (
        "start_page_id",
        "startPageId",
        "start_pageId",
        "start_page_key",
        "startPageKey",
        "start_pageKey",
        "page_id",
        "pageId",
        "page_key",
        "pageKey",
    ),
    "full_phrase": ("full_phrase", "fullPhrase"),
    "anchor_text": ("anchor_text", "anchorText", "key_span", "keySpan"),
    "line_ids": ("line_ids", "lineIds"),
    "timestamps": ("timestamps", "timestamp"),
    "reasoning": ("reasoning",),
    "value": ("value",),
}

_CANONICAL_NAMES: dict[str, str] = {
    alias.lower(): canonical
    for canonical, aliases in ATTRIBUTE_ALIASES.items()
    for alias in aliases
}

TEXT_ATTRIBUTES = frozenset({"full_phrase", "anchor_text", "reasoning", "value"})


def canonical_attribute_name(name: str) -> str:
    """Map any known alias to its snake_case name; unknown names are lowercased."""
    lowered = name.replace("\\_", "_").lower()
    return _CANONICAL_NAMES.get(lowered, lowered)


# ── Extraction ───────────────────────────────────────────────────────


@lru_cache(maxsize=128)
def _attribute_matcher(name: str) -> re.Pattern:
    """Compiled matcher for name='...' or name="..." with escaped quotes."""
    return re.compile(
        r"(?<![A-Za-z0-9_])" + re.escape(name)
        + r"""\s*=\s*(?:'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)")""",
        re.IGNORECASE | re.DOTALL,
    )


def extract_attribute(tag: str, candidate_names: tuple[str, ...] | list[str]) -> str | None:
    """Return the raw (still escaped) value of the first candidate present in tag."""
    for name in candidate_names:
        match = _attribute_matcher(name).search(tag)
        if match:
            value = match.group(1)
            return value if value is not None else match.group(2)
    return None


def extract_known_attribute(tag: str, canonical: str) -> str | None:
    """Extract a canonical attribute, trying all of its aliases."""
    return extract_attribute(tag, ATTRIBUTE_ALIASES[canonical])
