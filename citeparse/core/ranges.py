"""Expand numeric range expressions ("3-7,12") into bounded integer lists."""

import re

from citeparse.core.config import MAX_FULL_EXPANSION, MAX_REGEX_INPUT_LENGTH, SAMPLE_COUNT
from citeparse.core.safety import validate_input

_INT_RE = re.compile(r"^\s*(\d{1,15})\s*$")
_RANGE_RE = re.compile(r"^\s*(\d{0,15})\s*-\s*(\d{0,15})\s*$")


# ── Public API ───────────────────────────────────────────────────────


def expand_range(
    range_expr: str,
    max_full_expansion: int = MAX_FULL_EXPANSION,
    sample_count: int = SAMPLE_COUNT,
    max_input_length: int = MAX_REGEX_INPUT_LENGTH,
) -> list[int] | None:
    """Expand a comma-separated list of integers and ranges.

    Returns a sorted list of unique integers, or None when nothing parses.
    Ranges wider than max_full_expansion are sampled down to exactly
    sample_count points (both ends included). A descending range keeps only
    its start: "10-5" -> [10]. Numbers longer than 15 digits are skipped.
    """
    if not range_expr:
        return None
    validate_input(range_expr, max_input_length)

    values: set[int] = set()
    for piece in range_expr.split(","):
        if not piece.strip():
            continue

        single = _INT_RE.match(piece)
        if single:
            values.add(int(single.group(1)))
            continue

        bounds = _RANGE_RE.match(piece)
        if not bounds or not bounds.group(1):
            continue

        start = int(bounds.group(1))
        if not bounds.group(2):
            values.add(start)
            continue

        end = int(bounds.group(2))
        if start > end:
            values.add(start)
        elif end - start + 1 <= max_full_expansion:
            values.update(range(start, end + 1))
        else:
            values.update(sample_range(start, end, sample_count))

    if not values:
        return None
    return sorted(values)


def sample_range(start: int, end: int, sample_count: int = SAMPLE_COUNT) -> list[int]:
    """Pick sample_count points from [start, end] at a constant stride.

    Always includes start and end; interior points never reach end.
    """
    if end - start + 1 <= sample_count:
        return list(range(start, end + 1))

    step = max(1, (end - start) // (sample_count - 1))
    samples = [start]
    for i in range(1, sample_count - 1):
        point = start + step * i
        if point >= end:
            break
        samples.append(point)
    samples.append(end)
    return samples


def format_range(values: list[int] | None) -> str:
    """Join an expanded list back into its canonical "1,2,3" form."""
    if not values:
        return ""
    return ",".join(str(v) for v in values)
