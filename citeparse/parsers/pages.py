"""Page locators: parsing page ids and stripping page/line markup."""

import re

_COMPACT_PAGE_RE = re.compile(r"^\s*(\d{1,15})_(\d{1,15})\s*$")
_PAGE_INDEX_RE = re.compile(
    r"page[_a-zA-Z]*(\d{1,15})_index_(\d{1,15})(?!\d)", re.IGNORECASE
)
_FIRST_INT_RE = re.compile(r"(?<!\d)\d{1,15}(?!\d)")
_PAGE_TAG_RE = re.compile(r"</?page_number_\d+_index_\d+>")
_LINE_TAG_RE = re.compile(r"<line id=\"[^\"]*\">|</line>")


def parse_page_id(page_id: str | None) -> tuple[int | None, str | None]:
    """Parse "N_I" or "page_number_N_index_I" into (page_number, start_page_id).

    Pages are 1-indexed. "0_0" is corrected to page 1, index 0; any other
    page 0 is ambiguous and yields (None, None).
    """
    if not page_id:
        return None, None

    match = _COMPACT_PAGE_RE.match(page_id) or _PAGE_INDEX_RE.search(page_id)
    if not match:
        return None, None

    page, index = int(match.group(1)), int(match.group(2))
    if page == 0:
        if index != 0:
            return None, None
        page = 1
    return page, format_page_id(page, index)


def format_page_id(page: int, index: int = 0) -> str:
    return f"page_number_{page}_index_{index}"


def get_citation_page_number(start_page_id: str | None) -> int | None:
    """First integer in a page key, e.g. "page_key_7_index_2" -> 7."""
    if not start_page_id:
        return None
    match = _FIRST_INT_RE.search(start_page_id)
    return int(match.group(0)) if match else None


def remove_page_number_metadata(page_text: str) -> str:
    """Strip <page_number_N_index_I> wrappers from source page text."""
    return _PAGE_TAG_RE.sub("", page_text).strip()


def remove_line_id_metadata(page_text: str) -> str:
    """Strip <line id="..."> markup from source page text."""
    return _LINE_TAG_RE.sub("", page_text)
