"""Build Citation records from normalized <cite /> tags."""

import logging
import re

from citeparse.core.config import DEFAULT_LIMITS, ExtractionLimits
from citeparse.core.hashing import citation_key
from citeparse.core.ranges import expand_range
from citeparse.parsers.attributes import extract_known_attribute
from citeparse.parsers.models import Citation, CitationRecord, Timestamps
from citeparse.parsers.normalize import find_cite_tags, normalize_citations
from citeparse.parsers.pages import parse_page_id

logger = logging.getLogger(__name__)

_ESCAPED_QUOTE_RE = re.compile(r"\\+(['\"])")
_LINE_ID_NOISE_RE = re.compile(r"[A-Za-z_\[\](){}:]")


# ── Single Tag ───────────────────────────────────────────────────────


def build_citation(
    tag: str,
    fallback_attachment_id: str | None = None,
    citation_number: int | None = None,
    limits: ExtractionLimits | None = None,
) -> Citation:
    """Build a Citation from one normalized tag.

    Aliases are tried for every attribute, so un-normalized tags work too.
    An attachment id of unexpected length is replaced by the fallback id
    when one is given.
    """
    limits = limits or DEFAULT_LIMITS

    attachment_id = extract_known_attribute(tag, "attachment_id")
    if fallback_attachment_id and (
        attachment_id is None or len(attachment_id) != limits.attachment_id_length
    ):
        attachment_id = fallback_attachment_id

    page_number, start_page_id = parse_page_id(extract_known_attribute(tag, "start_page_id"))

    line_ids = None
    raw_line_ids = extract_known_attribute(tag, "line_ids")
    if raw_line_ids:
        line_ids = expand_range(
            _LINE_ID_NOISE_RE.sub("", raw_line_ids),
            limits.max_full_expansion,
            limits.sample_count,
            limits.max_input_length,
        )

    timestamps = None
    raw_timestamps = extract_known_attribute(tag, "timestamps")
    if raw_timestamps:
        start_time, _, end_time = raw_timestamps.partition("-")
        timestamps = Timestamps(
            start_time=start_time.strip() or None,
            end_time=end_time.strip() or None,
        )

    return Citation(
        attachment_id=attachment_id,
        page_number=page_number,
        start_page_id=start_page_id,
        full_phrase=attribute_text(tag, "full_phrase"),
        anchor_text=attribute_text(tag, "anchor_text"),
        line_ids=line_ids,
        timestamps=timestamps,
        reasoning=attribute_text(tag, "reasoning"),
        value=attribute_text(tag, "value"),
        citation_number=citation_number,
    )


def parse_citation_fragment(
    fragment: str,
    fallback_attachment_id: str | None = None,
    citation_number: int | None = None,
    limits: ExtractionLimits | None = None,
) -> Citation:
    """Build a Citation from text holding one tag, keeping the surrounding text."""
    spans = find_cite_tags(fragment)
    if not spans:
        return Citation(before_cite=fragment, citation_number=citation_number)

    start, end = spans[0]
    citation = build_citation(
        fragment[start:end], fallback_attachment_id, citation_number, limits
    )
    citation.before_cite = fragment[:start]
    citation.after_cite = fragment[end:]
    return citation


def unescape_quotes(value: str | None) -> str | None:
    """Collapse any run of backslashes before a quote: It\\\\\\'s -> It's."""
    if value is None:
        return None
    return _ESCAPED_QUOTE_RE.sub(r"\1", value)


def attribute_text(tag: str, canonical: str) -> str | None:
    """Plain text of a text attribute: quotes unescaped, &lt; back to "<"."""
    value = unescape_quotes(extract_known_attribute(tag, canonical))
    return value.replace("&lt;", "<") if value is not None else None


# ── Whole Text ───────────────────────────────────────────────────────


def extract_xml_citations(
    text: str,
    fallback_attachment_id: str | None = None,
    limits: ExtractionLimits | None = None,
) -> CitationRecord:
    """Normalize text and build a keyed record from every <cite /> tag.

    Tags are numbered from 1 in order of appearance; tags without a
    full_phrase are skipped.
    """
    normalized = normalize_citations(text, limits)
    citations: CitationRecord = {}

    for number, (start, end) in enumerate(find_cite_tags(normalized), 1):
        citation = build_citation(
            normalized[start:end], fallback_attachment_id, number, limits
        )
        if not citation.full_phrase:
            logger.debug("Skipping citation tag %d: no full_phrase", number)
            continue
        citations[citation_key(citation)] = citation

    return citations
