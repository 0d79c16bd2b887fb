"""
LLM response parsing helpers

Locates JSON payloads inside free-form model output and coerces individual
fields to the documented defaults. Nothing in here raises on bad field values;
only the top-level parse functions raise ParseError when no JSON can be found.
"""

import json
import logging
from typing import Any, Iterator, List, Optional

from .errors import ParseError
from .interfaces import EmailCategory

logger = logging.getLogger(__name__)

_CLOSERS = {"[": "]", "{": "}"}


def strip_code_fences(raw_content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one"""
    content = raw_content.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        content = content[first_newline + 1:] if first_newline != -1 else content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def iter_balanced_json(text: str, opener: str) -> Iterator[str]:
    """
    Yield every balanced substring starting with `opener` ('[' or '{').

    Brackets inside string literals are ignored. If a candidate never closes,
    scanning resumes at the next opener.
    """
    if opener not in _CLOSERS:
        raise ValueError(f"Unsupported opener: {opener!r}")
    closer = _CLOSERS[opener]

    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    end = index
                    break
        if end != -1:
            yield text[start:end + 1]
            start = text.find(opener, end + 1)
        else:
            start = text.find(opener, start + 1)


def find_balanced_json(text: str, opener: str) -> Optional[str]:
    """Return the first balanced substring starting with `opener`, or None"""
    return next(iter_balanced_json(text, opener), None)


def _parse_balanced(raw_content: Any, opener: str, expected: type) -> Any:
    if not isinstance(raw_content, str) or not raw_content.strip():
        raise ParseError("Empty response", raw_response=raw_content if isinstance(raw_content, str) else None)

    content = strip_code_fences(raw_content)
    last_error = f"No JSON {expected.__name__} found in response"

    # Prose around the payload may contain bracketed text of its own
    for candidate in iter_balanced_json(content, opener):
        try:
            parsed = json.loads(candidate)
        except ValueError as e:
            last_error = f"Invalid JSON: {e}"
            continue
        if isinstance(parsed, expected):
            return parsed
        last_error = f"Expected JSON {expected.__name__}"

    raise ParseError(last_error, raw_response=raw_content)


def parse_json_array(raw_content: Any) -> List[Any]:
    return _parse_balanced(raw_content, "[", list)


def parse_json_object(raw_content: Any) -> dict:
    return _parse_balanced(raw_content, "{", dict)


def coerce_str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def coerce_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def clamp_confidence(value: float) -> float:
    # Compare before converting: ints beyond float range must not overflow
    clamped = float(max(0.0, min(1.0, value)))
    if clamped != value:
        logger.debug(f"Clamped confidence {value} -> {clamped}")
    return clamped


def coerce_confidence(value: Any, default: float = 0.5) -> float:
    """Numeric confidence clamped to [0, 1]; anything else becomes the default"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value != value:  # NaN
        return default
    return clamp_confidence(value)


def coerce_category(value: Any) -> EmailCategory:
    return EmailCategory.coerce(value)
