"""Tag normalizer: rewrite model output so every citation is one canonical tag.

Models emit the <cite /> dialect in many broken shapes: missing "<", tags
wrapping visible text, unclosed tags, camelCase or escaped attribute names,
HTML entities, markdown emphasis and inconsistently escaped quotes inside
values. normalize_citations() turns all of these into

    <cite attachment_id='..' start_page_id='..' full_phrase='..' ... />

with attributes in a fixed order and every quote inside a value escaped as
\\' or \\". A "<" inside a text value is written as &lt;. Text outside
citation tags is left alone, except that the body of a <cite ...>body</cite>
tag is moved in front of the (now self-closing) tag. Normalizing
already-normalized text is a no-op.
"""

import logging
import re

from citeparse.core.config import DEFAULT_LIMITS, ExtractionLimits
from citeparse.core.ranges import expand_range, format_range
from citeparse.core.safety import validate_input
from citeparse.parsers.attributes import (
    ATTRIBUTE_ALIASES,
    TEXT_ATTRIBUTES,
    canonical_attribute_name,
)

logger = logging.getLogger(__name__)

# ── Patterns ─────────────────────────────────────────────────────────

_CITE_OPEN_RE = re.compile(r"<cite\b")
_CITE_CLOSE = "</cite>"
_MISSING_BRACKET_RE = re.compile(
    r"(?<![<a-zA-Z])cite\s+((?:attachment|file)(?:\\?_)?id)\s*=",
    re.IGNORECASE,
)
_ATTR_NAME_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*=\s*")
_UNQUOTED_VALUE_RE = re.compile(r"[^\s/>]*")
_TEXT_VALUE_END_RE = {
    quote: re.compile(r"(?<!\\)" + quote + r"(?=\s+[A-Za-z_][A-Za-z0-9_]*\s*=|\s*$)")
    for quote in ("'", '"')
}

_MARKDOWN_NOISE_RE = re.compile(r"[\r\n]+|[*_]{2,}|\*")
_HTML_ENTITY_RE = re.compile(r"&(?:quot|apos|lt|gt|amp);")
_HTML_ENTITIES = {"&quot;": '"', "&apos;": "'", "&lt;": "<", "&gt;": ">", "&amp;": "&"}
_QUOTE_RE = re.compile(r"\\*(['\"])")
_BARE_SINGLE_QUOTE_RE = re.compile(r"(?<!\\)'")

_RANGE_CHARSET_RE = re.compile(r"^[\[\](){}A-Za-z0-9_\-, ]+$")
_RANGE_NOISE_RE = re.compile(r"[A-Za-z_\[\](){}:]")

_TAG_TERMINATORS = " \t\r\n/>"


# ── Public API ───────────────────────────────────────────────────────


def normalize_citations(text: str, limits: ExtractionLimits | None = None) -> str:
    """Rewrite every citation in text as one canonical self-closing tag."""
    limits = limits or DEFAULT_LIMITS
    text = (text or "").strip()
    if not text:
        return ""
    validate_input(text, limits.max_input_length)

    text = _MISSING_BRACKET_RE.sub(r"<cite \1=", text)

    parts: list[str] = []
    pos = 0
    while True:
        opening = _CITE_OPEN_RE.search(text, pos)
        if not opening:
            break
        start = opening.start()
        parts.append(text[pos:start])

        following = _CITE_OPEN_RE.search(text, opening.end())
        limit = following.start() if following else len(text)
        end, self_closing = find_tag_end(text, start, limit)
        tag = _normalize_tag(text[start:end], limits)
        if tag is None:
            logger.debug("Leaving <cite> tag without attributes at offset %d as is", start)

        if self_closing:
            parts.append(tag if tag is not None else text[start:end])
            pos = end
            continue

        close = text.find(_CITE_CLOSE, end, limit)
        segment_end = close + len(_CITE_CLOSE) if close != -1 else end
        if tag is None:
            parts.append(text[start:segment_end])
        elif close != -1 and text[end:close].strip():
            parts.append(text[end:close].strip() + tag)
        else:
            parts.append(tag)
        pos = segment_end

    parts.append(text[pos:])
    return "".join(parts)


def find_tag_end(text: str, start: int, limit: int | None = None) -> tuple[int, bool]:
    """Find where the <cite tag opened at start ends.

    Returns (index just past the tag, self_closing). Quoted values are
    skipped; a quote only closes a value when followed by whitespace, "/",
    ">" or the end of text, so apostrophes inside values survive. When quotes
    never balance, the first ">" wins. A tag with no ">" before limit is
    treated as unclosed and runs to limit.
    """
    limit = len(text) if limit is None else limit
    quote = None
    i = start + len("<cite")
    while i < limit:
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote and (i + 1 >= limit or text[i + 1] in _TAG_TERMINATORS):
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == ">":
            return i + 1, False
        elif ch == "/" and text.startswith("/>", i):
            return i + 2, True
        i += 1

    gt = text.find(">", start, limit)
    if gt != -1:
        return gt + 1, text[gt - 1] == "/"
    return limit, False


def find_cite_tags(text: str) -> list[tuple[int, int]]:
    """(start, end) spans of every self-closing <cite ... /> tag in text."""
    spans: list[tuple[int, int]] = []
    pos = 0
    while True:
        opening = _CITE_OPEN_RE.search(text, pos)
        if not opening:
            return spans
        following = _CITE_OPEN_RE.search(text, opening.end())
        limit = following.start() if following else len(text)
        end, self_closing = find_tag_end(text, opening.start(), limit)
        if self_closing:
            spans.append((opening.start(), end))
        pos = end


# ── Tag Rewriting ────────────────────────────────────────────────────


def _normalize_tag(raw_tag: str, limits: ExtractionLimits) -> str | None:
    """Canonical form of one tag, or None when it has no attributes.

    Empty known attributes are dropped; empty unknown ones are kept.
    """
    inner = raw_tag[len("<cite"):]
    if inner.endswith("/>"):
        inner = inner[:-2]
    elif inner.endswith(">"):
        inner = inner[:-1]
    inner = inner.replace("\\_", "_")

    attrs = _parse_attributes(inner)
    if not attrs:
        return None

    for name, value in attrs.items():
        if name in TEXT_ATTRIBUTES:
            attrs[name] = _clean_text_value(value)
        elif name == "line_ids":
            attrs[name] = _clean_line_ids(value, limits)
        elif name == "timestamps" and _RANGE_CHARSET_RE.match(value):
            attrs[name] = _clean_line_ids(value, limits)
        else:
            attrs[name] = _BARE_SINGLE_QUOTE_RE.sub(r"\\'", value)

    # Known attributes left empty by cleanup carry nothing.
    attrs = {n: v for n, v in attrs.items() if v or n not in ATTRIBUTE_ALIASES}
    if not attrs:
        return "<cite />"

    rebuilt = " ".join(f"{name}='{attrs[name]}'" for name in _ordered_names(attrs))
    return f"<cite {rebuilt} />"


def _parse_attributes(inner: str) -> dict[str, str]:
    """Parse name=value pairs in any order; later duplicates win."""
    attrs: dict[str, str] = {}
    pos = 0
    while True:
        match = _ATTR_NAME_RE.search(inner, pos)
        if not match:
            return attrs
        name = canonical_attribute_name(match.group(1))
        value_start = match.end()

        if value_start < len(inner) and inner[value_start] in "'\"":
            quote = inner[value_start]
            if name in TEXT_ATTRIBUTES:
                value_end = _text_value_end(inner, value_start + 1, quote)
            else:
                value_end = _quoted_value_end(inner, value_start + 1, quote)
            attrs[name] = inner[value_start + 1 : value_end]
            pos = value_end + 1
        else:
            unquoted = _UNQUOTED_VALUE_RE.match(inner, value_start)
            attrs[name] = unquoted.group(0)
            pos = max(unquoted.end(), value_start + 1)


def _text_value_end(inner: str, start: int, quote: str) -> int:
    """End of a free-text value: the quote that precedes the next attribute."""
    match = _TEXT_VALUE_END_RE[quote].search(inner, start)
    if match:
        return match.start()
    last = inner.rfind(quote, start)
    return last if last != -1 else len(inner)


def _quoted_value_end(inner: str, start: int, quote: str) -> int:
    i = start
    while i < len(inner):
        if inner[i] == "\\":
            i += 2
            continue
        if inner[i] == quote:
            return i
        i += 1
    return len(inner)


def _ordered_names(attrs: dict[str, str]) -> list[str]:
    """Canonical attribute order; unknown attributes follow alphabetically."""
    ordered: list[str] = []
    if "attachment_id" in attrs:
        ordered.append("attachment_id")

    if "timestamps" in attrs:
        ordered.extend(n for n in ("full_phrase", "anchor_text") if n in attrs)
        ordered.append("timestamps")
    else:
        if "start_page_id" in attrs:
            ordered.append("start_page_id")
        ordered.extend(
            sorted(n for n in attrs if n.startswith("start_page") and n != "start_page_id")
        )
        ordered.extend(n for n in ("full_phrase", "anchor_text", "line_ids") if n in attrs)

    ordered.extend(n for n in ("reasoning", "value") if n in attrs)

    placed = set(ordered)
    ordered.extend(sorted(n for n in attrs if n not in placed))
    return ordered


# ── Value Cleanup ────────────────────────────────────────────────────


def _clean_text_value(content: str) -> str:
    """Flatten newlines, drop markdown emphasis, decode entities, escape quotes.

    "<" is re-encoded as &lt; so a decoded "<cite" never starts a tag.
    """
    content = _MARKDOWN_NOISE_RE.sub(
        lambda m: " " if m.group(0)[0] in "\r\n" else "", content
    )
    content = decode_html_entities(content)
    return _QUOTE_RE.sub(r"\\\1", content).replace("<", "&lt;")


def decode_html_entities(content: str) -> str:
    """Decode the five XML entities until none remain (&amp;quot; -> ")."""
    while True:
        decoded = _HTML_ENTITY_RE.sub(lambda m: _HTML_ENTITIES[m.group(0)], content)
        if decoded == content:
            return decoded
        content = decoded


def _clean_line_ids(value: str, limits: ExtractionLimits) -> str:
    cleaned = _RANGE_NOISE_RE.sub("", value).replace(";", ",")
    expanded = expand_range(
        cleaned, limits.max_full_expansion, limits.sample_count, limits.max_input_length
    )
    return format_range(expanded)
