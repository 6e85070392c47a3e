"""Best-effort extraction of JSON payloads from language-model text."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Union


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*$", re.MULTILINE)
_OPEN_RE = re.compile(r"[{[]")
_DECODER = json.JSONDecoder()

INVALID_FORMAT = "invalid analysis format"


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    reason: str


ParseResult = Union[Ok, Err]


def strip_code_fences(text: str) -> str:
    """Drop Markdown fence lines (```json, ```solidity, ```) and trim."""
    return _FENCE_RE.sub("", text).strip()


def _loads(text: str) -> ParseResult:
    try:
        return Ok(json.loads(text))
    except (TypeError, ValueError) as exc:
        return Err(str(exc))


def _extract(text: str) -> ParseResult:
    parsed = _loads(text)
    if isinstance(parsed, Ok):
        return parsed

    # First bracket that opens a complete JSON value wins; trailing prose is ignored.
    for match in _OPEN_RE.finditer(text):
        try:
            value, _ = _DECODER.raw_decode(text, match.start())
        except ValueError:
            continue
        return Ok(value)

    return Err(INVALID_FORMAT)


def tolerant_parse(
    raw: str,
    required: Iterable[str] = (),
    array_keys: Iterable[str] = (),
) -> ParseResult:
    """Parse the JSON value embedded in ``raw`` without ever raising.

    ``required`` keys must be present on an object result and every key in
    ``array_keys`` must hold a list.
    """
    if not raw or not raw.strip():
        return Err("empty response")

    result = _extract(strip_code_fences(raw))
    if isinstance(result, Err):
        logger.warning("Could not extract JSON from model output: %s", raw[:200])
        return result

    value = result.value
    required = tuple(required)
    array_keys = tuple(array_keys)
    if required or array_keys:
        if not isinstance(value, dict):
            return Err(f"expected a JSON object, got {type(value).__name__}")
        missing = [key for key in required if key not in value]
        if missing:
            return Err(f"missing required keys: {', '.join(missing)}")
        for key in array_keys:
            if key in value and not isinstance(value[key], list):
                return Err(f"'{key}' must be an array")
    return Ok(value)
