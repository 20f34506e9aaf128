"""Helpers for pulling structured data out of AI CLI output."""

import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def _find_object_end(text: str, start: int) -> Optional[int]:
    """Index of the brace closing the object that opens at ``start``."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_json_block(text: str) -> Optional[dict]:
    """
    Extract the first top-level JSON object embedded in free text.

    AI CLIs tend to wrap their JSON answer in prose or markdown fences. This
    scans for ``{``, matches braces (ignoring braces inside string literals)
    and returns the first candidate that decodes to an object.

    Args:
        text: Raw CLI output

    Returns:
        The decoded object, or None if no JSON object could be found
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        end = _find_object_end(text, start)
        if end is None:
            break
        try:
            data = json.loads(text[start:end + 1])
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            # Not valid JSON, try the next brace
            pass
        start = text.find("{", start + 1)

    logger.debug("No JSON object found in AI output")
    return None
