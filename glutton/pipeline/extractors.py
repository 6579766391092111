"""Pull JSON structures out of free-form LLM output.

Models like to wrap JSON in prose ("Here is the JSON: {...}") or markdown
fences, and sometimes emit more than one JSON-looking fragment. The scanner
below walks the text once, tracks string literals and nesting depth, and
returns the first complete top-level structure that actually parses.
"""

import json
import logging
from typing import Any

from .errors import ParseFailure

logger = logging.getLogger(__name__)

_PAIRS = {"{": "}", "[": "]"}


def _balanced_spans(text: str, opener: str):
    """Yield (start, end) of every balanced span starting with opener, in order.

    Nested structures inside a yielded span are not yielded separately.
    """
    closer = _PAIRS[opener]
    start: int | None = None
    depth = 0
    in_string = False
    escape = False

    for index, char in enumerate(text):
        if start is None:
            if char == opener:
                start = index
                depth = 1
                in_string = False
                escape = False
            continue

        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _PAIRS:
            depth += 1
        elif char in ("}", "]"):
            depth -= 1
            if depth == 0:
                if char == closer:
                    yield start, index + 1
                start = None


def _extract_first(text: str, opener: str) -> Any | None:
    for start, end in _balanced_spans(text, opener):
        candidate = text[start:end]
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            logger.debug("skipping unparseable %s-span at %d", opener, start)
    return None


def extract_first_object(text: str) -> dict | None:
    """Return the first complete JSON object in text, or None."""
    return _extract_first(text, "{")


def extract_first_array(text: str) -> list | None:
    """Return the first complete JSON array in text, or None."""
    return _extract_first(text, "[")


def parse_string_list(text: str) -> list[str]:
    """Strings of the first JSON array in text.

    Objects with a "text" field count as their text; blanks and other items
    are dropped. Raises ParseFailure when there is no array at all.
    """
    items = extract_first_array(text)
    if items is None:
        raise ParseFailure("no JSON array found in generated text")
    result: list[str] = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("text")
        if isinstance(item, str) and item.strip():
            result.append(item.strip())
    return result
