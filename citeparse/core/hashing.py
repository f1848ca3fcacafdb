"""Content-addressed citation keys."""

import hashlib
import json
import re

from citeparse.parsers.models import Citation
from citeparse.parsers.pages import get_citation_page_number

KEY_LENGTH = 16

_WS_RE = re.compile(r"\s+")


def citation_key(citation: Citation) -> str:
    """Deterministic 16-hex-char key over a citation's identifying fields.

    Two citations that quote the same phrase from the same place hash the
    same no matter how their raw tags were ordered, quoted or escaped.
    """
    return _canonical_hash(citation_projection(citation))[:KEY_LENGTH]


def citation_projection(citation: Citation) -> dict:
    """Identifying fields only, with whitespace collapsed in text fields."""
    page_number = citation.page_number
    if page_number is None:
        page_number = get_citation_page_number(citation.start_page_id)

    timestamps = citation.timestamps
    return {
        "attachment_id": citation.attachment_id or "",
        "page_number": page_number,
        "full_phrase": _collapse(citation.full_phrase),
        "anchor_text": _collapse(citation.anchor_text),
        "line_ids": citation.line_ids or [],
        "start_time": (timestamps.start_time if timestamps else None) or "",
        "end_time": (timestamps.end_time if timestamps else None) or "",
    }


# ── Helpers ──────────────────────────────────────────────────────────


def _collapse(text: str | None) -> str:
    return _WS_RE.sub(" ", text).strip() if text else ""


def _canonical_hash(data: dict) -> str:
    """Deterministic SHA-1 hash of a dict via sorted-key JSON."""
    blob = json.dumps(data, sort_keys=True, ensure_ascii=False).encode()
    return hashlib.sha1(blob).hexdigest()
