"""Tolerant extraction of JSON findings from free-form model output.

Three strategies run in order and the first one that yields candidates wins.
Each strategy is a pure function ``text -> list | None``.
"""

import json
from collections.abc import Callable

WRAPPER_KEYS = ("findings", "translations", "results")


def parse_whole(text: str) -> list | None:
    """Parse the full response as JSON: an array, or an object wrapping one."""
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        for key in WRAPPER_KEYS:
            if isinstance(parsed.get(key), list):
                return parsed[key]
        return [parsed]
    return None


def parse_array_slice(text: str) -> list | None:
    """Parse the span from the first ``[`` to the last ``]``."""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def _balanced_objects(text: str):
    """Yield every top-level ``{...}`` substring, honouring JSON string quoting."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:index + 1]


def parse_objects(text: str) -> list | None:
    """Parse each balanced object independently, dropping the malformed ones."""
    objects = []
    for chunk in _balanced_objects(text):
        try:
            objects.append(json.loads(chunk))
        except json.JSONDecodeError:
            continue
    return objects or None


PARSERS: tuple[Callable[[str], list | None], ...] = (parse_whole, parse_array_slice, parse_objects)


def parse_model_response(text: str) -> list:
    for parser in PARSERS:
        candidates = parser(text)
        if candidates is not None:
            return candidates
    return []
