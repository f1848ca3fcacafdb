"""Find citation objects inside already-parsed JSON model output."""

import logging
from typing import Any

from citeparse.core.config import DEFAULT_LIMITS, MAX_TRAVERSAL_DEPTH, ExtractionLimits
from citeparse.core.ranges import expand_range
from citeparse.parsers.attributes import TEXT_ATTRIBUTES, canonical_attribute_name
from citeparse.parsers.models import Citation, Timestamps
from citeparse.parsers.pages import format_page_id, parse_page_id

logger = logging.getLogger(__name__)

# Keys compared lowercased with underscores removed, so fullPhrase,
# full_phrase and FULL_PHRASE all count.
CITATION_FIELD_KEYS = frozenset({
    "fullphrase",
    "startpagekey",
    "startpageid",
    "pageid",
    "keyspan",
    "anchortext",
    "lineids",
})
CITATION_CONTAINER_KEYS = ("citation", "citations")

_PAGE_NUMBER_KEYS = frozenset({"pagenumber", "page"})
_START_TIME_KEYS = ("start_time", "startTime", "s")
_END_TIME_KEYS = ("end_time", "endTime", "e")


# ── Shape Checks ─────────────────────────────────────────────────────


def _squash(key: Any) -> str:
    return str(key).lower().replace("_", "")


def has_citation_fields(item: Any) -> bool:
    """True for a dict carrying at least one recognized citation field."""
    return isinstance(item, dict) and any(_squash(k) in CITATION_FIELD_KEYS for k in item)


def looks_like_citation(value: Any) -> bool:
    """A citation object, or a non-empty list holding at least one."""
    if isinstance(value, list):
        return any(has_citation_fields(item) for item in value)
    return has_citation_fields(value)


# ── Traversal ────────────────────────────────────────────────────────


def discover_citations(value: Any, max_depth: int = MAX_TRAVERSAL_DEPTH) -> list[dict]:
    """Collect raw citation objects from citation/citations properties.

    Walks dicts and lists depth-first, in document order. Branches deeper
    than max_depth are silently dropped, and a container reached a second
    time (shared or circular references) is not walked again.
    """
    found: list[dict] = []
    seen: set[int] = set()
    truncated = 0
    stack: list[tuple[Any, int]] = [(value, 0)]

    while stack:
        node, depth = stack.pop()
        if not isinstance(node, (dict, list)):
            continue
        if depth > max_depth:
            truncated += 1
            continue
        if id(node) in seen:
            continue
        seen.add(id(node))

        if isinstance(node, list):
            children = node
        else:
            for key in CITATION_CONTAINER_KEYS:
                candidate = node.get(key)
                if looks_like_citation(candidate):
                    items = candidate if isinstance(candidate, list) else [candidate]
                    found.extend(item for item in items if isinstance(item, dict))
            children = [v for k, v in node.items() if k not in CITATION_CONTAINER_KEYS]

        stack.extend((child, depth + 1) for child in reversed(children))

    if truncated:
        logger.debug("Citation discovery stopped at depth %d in %d branch(es)", max_depth, truncated)
    return found


# ── Conversion ───────────────────────────────────────────────────────


def json_citation_to_citation(
    item: dict,
    citation_number: int | None = None,
    limits: ExtractionLimits | None = None,
) -> Citation:
    """Build a Citation from a JSON citation object in camelCase or snake_case."""
    limits = limits or DEFAULT_LIMITS
    fields: dict[str, Any] = {}
    page_number = None
    for key, value in item.items():
        if _squash(key) in _PAGE_NUMBER_KEYS:
            page_number = value
        else:
            fields[canonical_attribute_name(str(key))] = value

    text = {
        name: _as_text(fields.get(name))
        for name in TEXT_ATTRIBUTES
    }

    number, start_page_id = _page_locator(fields.get("start_page_id"), page_number)

    return Citation(
        attachment_id=_as_text(fields.get("attachment_id")),
        page_number=number,
        start_page_id=start_page_id,
        full_phrase=text["full_phrase"],
        anchor_text=text["anchor_text"],
        line_ids=_line_ids(fields.get("line_ids"), limits),
        timestamps=_timestamps(fields.get("timestamps")),
        reasoning=text["reasoning"],
        value=text["value"],
        citation_number=citation_number,
    )


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return value if isinstance(value, str) else str(value)


def _page_locator(page_id: Any, page_number: Any) -> tuple[int | None, str | None]:
    if isinstance(page_id, str):
        number, start_page_id = parse_page_id(page_id)
        if number is not None:
            return number, start_page_id
    if isinstance(page_number, int) and not isinstance(page_number, bool) and page_number > 0:
        return page_number, format_page_id(page_number)
    return None, None


def _line_ids(raw: Any, limits: ExtractionLimits) -> list[int] | None:
    if isinstance(raw, str):
        return expand_range(
            raw, limits.max_full_expansion, limits.sample_count, limits.max_input_length
        )
    if isinstance(raw, int) and not isinstance(raw, bool):
        return [raw]
    if isinstance(raw, list):
        ids = [v for v in raw if isinstance(v, int) and not isinstance(v, bool)]
        return ids or None
    return None


def _timestamps(raw: Any) -> Timestamps | None:
    if isinstance(raw, str):
        start_time, _, end_time = raw.partition("-")
        raw = {"start_time": start_time.strip(), "end_time": end_time.strip()}
    if not isinstance(raw, dict):
        return None

    start_time = next((raw[k] for k in _START_TIME_KEYS if raw.get(k)), None)
    end_time = next((raw[k] for k in _END_TIME_KEYS if raw.get(k)), None)
    if start_time is None and end_time is None:
        return None
    return Timestamps(start_time=_as_text(start_time), end_time=_as_text(end_time))
