"""
Text extraction helpers for semi-structured page and script bodies.

``between`` isolates the text between two delimiters and ``cut_after_json``
trims a string that starts with a JSON value down to exactly that value,
treating brackets inside double-quoted strings as plain characters.
"""

import re

from ..exceptions import ExtractionError


def between(haystack: str, left: str | re.Pattern, right: str) -> str:
    """
    Return the text between the first match of *left* and the first
    following occurrence of *right*, or ``""`` when either is missing.
    """
    if isinstance(left, re.Pattern):
        match = left.search(haystack)
        if not match:
            return ""
        pos = match.end()
    else:
        pos = haystack.find(left)
        if pos == -1:
            return ""
        pos += len(left)

    end = haystack.find(right, pos)
    if end == -1:
        return ""
    return haystack[pos:end]


def cut_after_json(mixed_json: str) -> str:
    """
    Return the shortest prefix of *mixed_json* that is a balanced JSON
    object or array.

    Raises ExtractionError if the text does not start with ``{`` or ``[``
    or if the input ends before every bracket is closed.
    """
    if mixed_json[:1] == "[":
        open_char, close_char = "[", "]"
    elif mixed_json[:1] == "{":
        open_char, close_char = "{", "}"
    else:
        raise ExtractionError(
            "Can't cut unsupported JSON (need to begin with [ or { ) "
            f"but got: {mixed_json[:1]!r}",
            error_code="json.no_opening_bracket",
        )

    in_string = False
    escaped = False
    depth = 0

    for i, c in enumerate(mixed_json):
        if c == '"' and not escaped:
            in_string = not in_string
            continue

        escaped = c == "\\" and not escaped

        if in_string:
            continue

        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1

        if depth == 0:
            return mixed_json[: i + 1]

    raise ExtractionError(
        "Can't cut unsupported JSON (no matching closing bracket found)",
        error_code="json.unbalanced",
    )


_ABBREVIATED_RE = re.compile(r"([\d,.]+)([MK]?)")


def parse_abbreviated_number(text: str | None) -> int | None:
    """Parse counts like '1.2M', '35K' or '1,234' into an int."""
    if not text:
        return None
    match = _ABBREVIATED_RE.search(text.replace(" ", ""))
    if not match:
        return None
    number, multiplier = match.groups()
    if not multiplier:
        # Plain counts only carry thousands separators
        digits = re.sub(r"\D", "", number)
        return int(digits) if digits else None
    number = number.replace(",", ".")
    try:
        value = float(number)
    except ValueError:
        return None
    if multiplier == "M":
        value *= 1_000_000
    elif multiplier == "K":
        value *= 1_000
    return round(value)
