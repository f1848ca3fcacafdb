"""Extraction entry point: every citation dialect merged into one record."""

import json
import logging
from typing import Any

from citeparse.core.config import ExtractionConfig, ExtractionLimits
from citeparse.core.hashing import citation_key
from citeparse.parsers.deferred import (
    get_all_citations_from_deferred_response,
    has_deferred_citations,
)
from citeparse.parsers.discovery import (
    discover_citations,
    json_citation_to_citation,
    looks_like_citation,
)
from citeparse.parsers.models import Citation, CitationRecord
from citeparse.parsers.xml_citation import extract_xml_citations

logger = logging.getLogger(__name__)


def extract_all(llm_output: Any, config: ExtractionConfig | None = None) -> CitationRecord:
    """Extract every citation from model output (text or parsed JSON).

    Text is searched for <cite /> tags and, when it carries a citation data
    block, for deferred-JSON citations as well. Objects are searched for
    citation/citations properties and, once serialized, for <cite /> tags
    embedded in their string fields. Results merge by citation key, later
    ones winning.

    Malformed input yields fewer (or zero) citations; only InputTooLarge
    is raised.
    """
    config = config or ExtractionConfig()
    limits = config.limits
    citations: CitationRecord = {}

    if isinstance(llm_output, (dict, list)):
        if llm_output:
            citations.update(_extract_json_citations(llm_output, limits))
            text = _serialize(llm_output)
            if text is not None:
                citations.update(extract_xml_citations(text, limits=limits))
    elif isinstance(llm_output, str):
        if llm_output.strip():
            if has_deferred_citations(llm_output):
                citations.update(get_all_citations_from_deferred_response(
                    llm_output, config.strict_citation_ids, limits
                ))
            citations.update(extract_xml_citations(llm_output, limits=limits))
    elif llm_output is not None:
        logger.debug("Nothing to extract from %s input", type(llm_output).__name__)

    logger.debug("Extracted %d citation(s)", len(citations))
    return citations


def _extract_json_citations(obj: dict | list, limits: ExtractionLimits) -> CitationRecord:
    if looks_like_citation(obj):
        items = obj if isinstance(obj, list) else [obj]
        items = [item for item in items if isinstance(item, dict)]
    else:
        items = discover_citations(obj, limits.max_depth)

    citations: CitationRecord = {}
    for number, item in enumerate(items, 1):
        citation = json_citation_to_citation(item, number, limits)
        if citation.full_phrase:
            citations[citation_key(citation)] = citation
    return citations


def _serialize(obj: Any) -> str | None:
    try:
        return json.dumps(obj, default=str, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning("Skipping <cite /> search in object output: %s", e)
        return None


# ── Grouping ─────────────────────────────────────────────────────────


def group_citations_by_attachment_id(
    citations: CitationRecord | list[Citation],
) -> dict[str, CitationRecord]:
    """Split citations per source attachment ("" when none is set).

    A list is keyed by citation key, like an extraction result.
    """
    if isinstance(citations, list):
        entries = [(citation_key(c), c) for c in citations]
    else:
        entries = list(citations.items())

    grouped: dict[str, CitationRecord] = {}
    for key, citation in entries:
        grouped.setdefault(citation.attachment_id or "", {})[key] = citation
    return grouped
