"""
Response Sanitizer / Parser
=============================
Turns free-text model output into the weekly solution dict.

Models do not always return bare JSON: they wrap it in ``` fences or add a
sentence before/after. Accepted deviations:
  1. surrounding whitespace
  2. ``` / ```json fence markers anywhere in the text
  3. prose around the object; the first balanced {...} is kept

Anything else is a ParseError. No repair of the JSON itself is attempted.
"""

import json
import logging
import re

from config import SEVERITY_LEVELS

logger = logging.getLogger("guidance_rx.parser")

_FENCE_RE = re.compile(r"```(?:json)?\n?")


class ParseError(Exception):
    """Model output could not be turned into a JSON object.

    Carries the raw and cleaned text for operator diagnosis.
    """

    def __init__(self, message: str, raw_text: str, cleaned_text: str):
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text
        self.cleaned_text = cleaned_text

    def debug(self) -> dict:
        return {
            "rawResponse": self.raw_text,
            "cleanedResponse": self.cleaned_text,
            "parseError": self.message,
        }


def strip_fences(text: str) -> str:
    """Remove every ``` marker (with optional json tag) and trim."""
    return _FENCE_RE.sub("", text.strip()).strip()


def extract_json_object(text: str) -> str:
    """Return the first balanced top-level {...} span in `text`.

    Braces inside JSON string literals are ignored. Text without "{" is
    returned unchanged; an unclosed object is returned from "{" to the end
    so that json.loads reports the real problem.
    """
    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text[start:]


def parse_solution(raw_text: str) -> dict:
    """
    Sanitize and parse model output into a solution dict.

    Raises:
        ParseError: no JSON object could be parsed from the text.
    """
    raw_text = raw_text or ""
    cleaned = extract_json_object(strip_fences(raw_text))
    logger.debug(f"Cleaned response: {cleaned[:500]}")

    try:
        solution = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}")
        raise ParseError(str(e), raw_text, cleaned) from e
    except RecursionError as e:
        logger.error("JSON parse error: nesting too deep")
        raise ParseError("JSON nesting too deep", raw_text, cleaned) from e

    if not isinstance(solution, dict):
        raise ParseError(
            f"Expected a JSON object, got {type(solution).__name__}", raw_text, cleaned
        )

    if solution.get("severity") not in SEVERITY_LEVELS:
        logger.warning(f"Unexpected severity in model output: {solution.get('severity')!r}")

    return solution
