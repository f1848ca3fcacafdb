"""Deferred-JSON citations: [N] markers in text plus a trailing JSON data block.

    The company grew 45% [1].

    <<<CITATION_DATA>>>
    [{"n": 1, "a": "abc", "f": "grew 45%", "k": "45%", "p": "2_0", "l": [3]}]
    <<<END_CITATION_DATA>>>

The block may be a flat list, a single object, or grouped by attachment id
({"abc": [{...}, ...]}); keys may be full names or single-letter shorthand.
"""

import json
import logging
import re
from typing import Any, Callable, Optional

from pydantic import ValidationError

from citeparse.core.config import DEFAULT_LIMITS, ExtractionLimits
from citeparse.core.hashing import citation_key
from citeparse.core.safety import validate_input
from citeparse.parsers.json_repair import repair_json
from citeparse.parsers.models import (
    Citation,
    CitationData,
    CitationRecord,
    ParsedCitationResponse,
    Timestamps,
)
from citeparse.parsers.pages import parse_page_id

logger = logging.getLogger(__name__)

CITATION_DATA_START_DELIMITER = "<<<CITATION_DATA>>>"
CITATION_DATA_END_DELIMITER = "<<<END_CITATION_DATA>>>"

COMPACT_KEY_MAP = {
    "n": "id",
    "a": "attachment_id",
    "r": "reasoning",
    "f": "full_phrase",
    "k": "anchor_text",
    "p": "page_id",
    "l": "line_ids",
    "t": "timestamps",
}
TIMESTAMP_KEY_MAP = {"s": "start_time", "e": "end_time"}

_MARKER_RE = re.compile(r"\[(\d{1,15})\]")
_DIGITS_RE = re.compile(r"^\s*\d{1,15}\s*$")


class InvalidCitationData(ValueError):
    """A citation object in the data block has no usable numeric id."""


# ── Shorthand Expansion ──────────────────────────────────────────────


def expand_compact_keys(
    raw: dict,
    attachment_id: str | None = None,
    strict: bool = True,
    limits: ExtractionLimits | None = None,
) -> CitationData:
    """Expand shorthand keys and validate one raw citation object.

    attachment_id (from the grouped form) is injected when the object has
    none. In strict mode an object without an integer id raises
    InvalidCitationData; otherwise the id is carried through as None.
    String line_ids are expanded within limits.
    """
    expanded: dict[str, Any] = {}
    for key, value in raw.items():
        full_key = COMPACT_KEY_MAP.get(key, key)
        if full_key == "timestamps":
            value = _expand_timestamps(value)
        expanded[full_key] = value

    if attachment_id and not expanded.get("attachment_id"):
        expanded["attachment_id"] = attachment_id

    citation_id = expanded.get("id")
    if isinstance(citation_id, str) and _DIGITS_RE.match(citation_id):
        citation_id = int(citation_id)
    if not isinstance(citation_id, int) or isinstance(citation_id, bool):
        if strict:
            raise InvalidCitationData(f"Citation object has no numeric id: {citation_id!r}")
        citation_id = None
    expanded["id"] = citation_id

    return CitationData.model_validate(
        expanded, context={"limits": limits or DEFAULT_LIMITS}
    )


def _expand_timestamps(value: Any) -> Any:
    if isinstance(value, dict):
        return {TIMESTAMP_KEY_MAP.get(k, k): v for k, v in value.items()}
    if isinstance(value, str):
        start_time, _, end_time = value.partition("-")
        return {"start_time": start_time.strip() or None, "end_time": end_time.strip() or None}
    return value


def is_grouped_format(parsed: Any) -> bool:
    """True for {"<attachment id>": [...], ...}: every top-level value is a list."""
    return (
        isinstance(parsed, dict)
        and len(parsed) > 0
        and all(isinstance(v, list) for v in parsed.values())
    )


def _citations_from_json(
    parsed: Any, strict: bool, limits: ExtractionLimits
) -> list[CitationData]:
    if is_grouped_format(parsed):
        members = [
            (item, attachment_id)
            for attachment_id, items in parsed.items()
            for item in items
        ]
    elif isinstance(parsed, list):
        members = [(item, None) for item in parsed]
    else:
        members = [(parsed, None)]

    citations: list[CitationData] = []
    dropped = 0
    for item, attachment_id in members:
        if not isinstance(item, dict):
            dropped += 1
            continue
        try:
            citations.append(expand_compact_keys(item, attachment_id, strict, limits))
        except (InvalidCitationData, ValidationError) as e:
            logger.debug("Dropping citation object: %s", e)
            dropped += 1

    if dropped:
        logger.warning("Dropped %d invalid citation object(s) from data block", dropped)
    return citations


# ── Response Parsing ─────────────────────────────────────────────────


def parse_deferred_citation_response(
    llm_response: Any,
    strict: bool = True,
    limits: ExtractionLimits | None = None,
) -> ParsedCitationResponse:
    """Split a response into visible text and its parsed citation data block.

    Malformed JSON is repaired once before giving up; a payload that still
    does not parse yields success=False with both error messages rather
    than raising.
    """
    limits = limits or DEFAULT_LIMITS
    if not isinstance(llm_response, str) or not llm_response:
        return ParsedCitationResponse(
            visible_text="", success=False, error="Invalid input: expected a string"
        )
    validate_input(llm_response, limits.max_input_length)

    start = llm_response.find(CITATION_DATA_START_DELIMITER)
    if start == -1:
        return ParsedCitationResponse(visible_text=llm_response.strip(), success=True)

    visible_text = llm_response[:start].strip()
    payload_start = start + len(CITATION_DATA_START_DELIMITER)
    end = llm_response.find(CITATION_DATA_END_DELIMITER, payload_start)
    payload = llm_response[payload_start : end if end != -1 else len(llm_response)].strip()

    if not payload:
        return ParsedCitationResponse(visible_text=visible_text, success=True)

    repairs: list[str] = []
    try:
        parsed = json.loads(payload)
    except (ValueError, RecursionError) as initial_error:
        repaired, repairs = repair_json(payload)
        try:
            parsed = json.loads(repaired)
        except (ValueError, RecursionError) as repair_error:
            logger.warning("Citation data block is not valid JSON: %s", repair_error)
            return ParsedCitationResponse(
                visible_text=visible_text,
                success=False,
                error=(
                    f"Failed to parse citation JSON: {initial_error}; "
                    f"after repair: {repair_error}"
                ),
                repairs=repairs,
            )
        logger.warning(
            "Citation data block needed repair (%s) after: %s",
            ", ".join(repairs) or "no changes", initial_error,
        )

    citations = _citations_from_json(parsed, strict, limits)
    citation_map = {c.id: c for c in citations if c.id is not None}
    return ParsedCitationResponse(
        visible_text=visible_text,
        citations=citations,
        citation_map=citation_map,
        success=True,
        repairs=repairs,
    )


def deferred_citation_to_citation(
    data: CitationData, citation_number: int | None = None
) -> Citation:
    """Convert one data-block entry to a Citation; numbered by its id by default."""
    page_number, start_page_id = parse_page_id(data.page_id)

    timestamps = None
    if data.timestamps and (data.timestamps.start_time or data.timestamps.end_time):
        timestamps = Timestamps(
            start_time=data.timestamps.start_time, end_time=data.timestamps.end_time
        )

    return Citation(
        attachment_id=data.attachment_id,
        page_number=page_number,
        start_page_id=start_page_id,
        full_phrase=data.full_phrase,
        anchor_text=data.anchor_text,
        line_ids=data.line_ids,
        timestamps=timestamps,
        reasoning=data.reasoning,
        citation_number=citation_number if citation_number is not None else data.id,
    )


def get_all_citations_from_deferred_response(
    llm_response: str,
    strict: bool = True,
    limits: ExtractionLimits | None = None,
) -> CitationRecord:
    """Keyed record of every data-block citation that has a full_phrase."""
    parsed = parse_deferred_citation_response(llm_response, strict, limits)
    if not parsed.success:
        return {}

    citations: CitationRecord = {}
    for data in parsed.citations:
        citation = deferred_citation_to_citation(data)
        if citation.full_phrase:
            citations[citation_key(citation)] = citation
    return citations


# ── Markers ──────────────────────────────────────────────────────────


def has_deferred_citations(response: Any) -> bool:
    return isinstance(response, str) and CITATION_DATA_START_DELIMITER in response


def extract_visible_text(llm_response: str, limits: ExtractionLimits | None = None) -> str:
    return parse_deferred_citation_response(llm_response, limits=limits).visible_text


def replace_markers(
    text: str,
    citation_map: Optional[dict[int, CitationData]] = None,
    show_anchor_text: bool = False,
    replacer: Optional[Callable[[int, Optional[CitationData]], str]] = None,
    limits: ExtractionLimits | None = None,
) -> str:
    """Replace each [N] marker: removed by default, or its anchor text, or
    whatever replacer(id, data) returns.
    """
    validate_input(text, (limits or DEFAULT_LIMITS).max_input_length)

    def _substitute(match: re.Match) -> str:
        marker_id = int(match.group(1))
        data = citation_map.get(marker_id) if citation_map else None
        if replacer is not None:
            return replacer(marker_id, data)
        if show_anchor_text and data and data.anchor_text:
            return data.anchor_text
        return ""

    return _MARKER_RE.sub(_substitute, text)


def get_citation_marker_ids(text: str, limits: ExtractionLimits | None = None) -> list[int]:
    """Marker ids in order of appearance, duplicates included."""
    validate_input(text, (limits or DEFAULT_LIMITS).max_input_length)
    return [int(m.group(1)) for m in _MARKER_RE.finditer(text)]
