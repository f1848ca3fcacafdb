"""Turn cited model output back into plain text, and recover degenerate output."""

import re
from typing import Optional

from citeparse.core.config import DEFAULT_LIMITS, ExtractionLimits
from citeparse.core.hashing import citation_key
from citeparse.core.safety import validate_input
from citeparse.core.status import Verification, get_verification_text_indicator
from citeparse.parsers.normalize import find_cite_tags
from citeparse.parsers.xml_citation import attribute_text, build_citation

MIN_REPEATED_OUTPUT_LENGTH = 64
MIN_SENTENCE_REPETITIONS = 2
MIN_SENTENCE_CONTENT_LENGTH = 10

_SENTENCE_END_RE = re.compile(r"[.?!](?=\s+|$)")


# ── Citation Tags ────────────────────────────────────────────────────


def replace_citations(
    text: str,
    leave_anchor_text_behind: bool = False,
    verifications: Optional[dict[str, Verification | dict]] = None,
    show_verification_status: bool = False,
    limits: ExtractionLimits | None = None,
) -> str:
    """Remove every <cite /> tag from text.

    With leave_anchor_text_behind, each tag is replaced by its anchor text.
    With show_verification_status, a status glyph is appended; the
    verification is looked up by citation key first, then by the tag's
    1-based position ("1", "2", ...).
    """
    limits = limits or DEFAULT_LIMITS
    validate_input(text, limits.max_input_length)
    parts: list[str] = []
    pos = 0

    for number, (start, end) in enumerate(find_cite_tags(text), 1):
        parts.append(text[pos:start])
        tag = text[start:end]
        output = ""

        if leave_anchor_text_behind:
            output = attribute_text(tag, "anchor_text") or ""

        if show_verification_status and verifications is not None:
            key = citation_key(build_citation(tag, limits=limits))
            verification = verifications.get(key) or verifications.get(str(number))
            output += get_verification_text_indicator(verification)

        parts.append(output)
        pos = end

    parts.append(text[pos:])
    return "".join(parts)


# ── Degenerate Output ────────────────────────────────────────────────


def is_repeated_character_output(content: str | None) -> bool:
    """True when content is one character repeated at least 64 times.

    Some models loop on a single character (typically when asked for a
    markdown table); such a response carries no citations.
    """
    if not content:
        return False
    trimmed = content.strip()
    if len(trimmed) < MIN_REPEATED_OUTPUT_LENGTH:
        return False
    return trimmed == trimmed[0] * len(trimmed)


def clean_repeating_last_sentence(text: str) -> str:
    """Collapse a final sentence repeated back-to-back into one copy.

    "Intro. Loop again here. Loop again here. Loop again here." keeps
    "Intro. Loop again here." Short sentences (under 10 characters) and
    sentences seen fewer than twice are left alone.
    """
    text = text.strip()
    ends = [m.start() for m in _SENTENCE_END_RE.finditer(text)]
    if len(ends) < 2:
        return text

    unit = text[ends[-2] + 1 : ends[-1] + 1]
    if len(unit.strip()[:-1]) < MIN_SENTENCE_CONTENT_LENGTH:
        return text
    if len(text) < len(unit) * MIN_SENTENCE_REPETITIONS:
        return text

    check_end = len(text) if text.endswith(unit) else ends[-1] + 1
    repetitions = 0
    first_start = -1
    while check_end - len(unit) >= 0 and text[check_end - len(unit) : check_end] == unit:
        repetitions += 1
        first_start = check_end - len(unit)
        check_end = first_start

    if repetitions >= MIN_SENTENCE_REPETITIONS:
        return text[:first_start] + unit
    return text
