"""Pull JSON objects out of free-form model output."""

import json
from typing import Any, Dict, Optional


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first balanced JSON object found in ``text``.

    Model replies often wrap the payload in prose or markdown fences, and may
    contain stray braces before the real object. Each ``{`` is tried as a
    start position; the scanner tracks string literals and escapes so braces
    inside strings do not unbalance the count. Returns ``None`` when no
    parseable object exists.
    """
    if not text:
        return None

    start = text.find('{')
    while start != -1:
        end = _find_balanced_end(text, start)
        if end is not None:
            candidate = text[start:end + 1]
            try:
                value = json.loads(candidate)
            except ValueError:
                value = None
            if isinstance(value, dict):
                return value
        start = text.find('{', start + 1)

    return None


def _find_balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return index

    return None
