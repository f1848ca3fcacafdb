"""Repair common mistakes in model-written JSON."""

import re

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")
_STRING_LITERAL_RE = re.compile(r'"(?:[^"\\]|\\.)*"', re.DOTALL)
_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_VALID_ESCAPES = frozenset("\"\\/bfnrt")
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")

_CLOSERS = {"[": "]", "{": "}"}


def repair_json(json_string: str) -> tuple[str, list[str]]:
    """Apply best-effort fixes and return (repaired, repairs applied).

    1. Strip markdown code fences.
    2. Drop the backslash from invalid escapes inside string literals
       (\\~, \\x, \\utest); valid escapes and \\uXXXX are kept.
    3. Close an unterminated string and any unclosed brackets/braces.
    4. Remove trailing commas before ] or }.
    """
    repaired = json_string.strip()
    repairs: list[str] = []

    unfenced = _FENCE_END_RE.sub("", _FENCE_START_RE.sub("", repaired))
    if unfenced != repaired:
        repairs.append("removed markdown code block markers")
        repaired = unfenced

    unescaped = _STRING_LITERAL_RE.sub(
        lambda m: _ESCAPE_RE.sub(_fix_escape, m.group(0)), repaired
    )
    if unescaped != repaired:
        repairs.append("fixed invalid escape sequences")
        repaired = unescaped

    suffix = _missing_closers(repaired)
    if suffix:
        repairs.append(f"added closing characters {suffix!r}")
        repaired += suffix

    uncomma = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    if uncomma != repaired:
        repairs.append("removed trailing commas")
        repaired = uncomma

    return repaired, repairs


def _missing_closers(text: str) -> str:
    """Characters that close whatever is still open at the end of text."""
    stack: list[str] = []
    in_string = False
    escape_next = False

    for ch in text:
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in "]}" and stack and stack[-1] == ch:
            stack.pop()

    suffix = '"' if in_string else ""
    return suffix + "".join(reversed(stack))


def _fix_escape(match: re.Match) -> str:
    escaped = match.group(1)
    if len(escaped) > 1 or escaped in _VALID_ESCAPES:
        return match.group(0)
    return escaped
