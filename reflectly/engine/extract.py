"""Pull the JSON object out of free-form model output.

This is a heuristic, not a parser: it takes everything between the first
``{`` and the last ``}``. Prose around the object is tolerated, but a stray
brace outside the object (or an unbalanced one inside a string value) will
produce a wrong span and an ``InvalidModelJson`` failure.
"""

from __future__ import annotations

import json
import re
from typing import Any

from reflectly.engine.errors import InvalidModelJson, ParseNotFound

RAW_PREVIEW_CHARS = 400

_FENCE = re.compile(r"```(?:json)?", flags=re.IGNORECASE)


def strip_fences(raw: str) -> str:
    return _FENCE.sub("", raw).strip()


def extract_json(raw: str | None) -> dict[str, Any]:
    cleaned = strip_fences(raw or "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start < 0 or end < start:
        raise ParseNotFound(cleaned[:RAW_PREVIEW_CHARS])

    candidate = cleaned[start:end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise InvalidModelJson(f"invalid JSON from model: {exc}", candidate[:RAW_PREVIEW_CHARS]) from exc

    if not isinstance(parsed, dict):
        raise InvalidModelJson("model JSON is not an object", candidate[:RAW_PREVIEW_CHARS])
    return parsed
