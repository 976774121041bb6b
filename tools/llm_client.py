"""LLM response parsing utilities."""

import json
import re
from typing import Any

# Precompiled regex for JSON extraction
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)

# Lenient decoder that allows control characters (raw newlines, tabs) inside
# JSON strings; models frequently produce these instead of proper \n escapes.
_LENIENT_DECODER = json.JSONDecoder(strict=False)


def _try_loads(text: str) -> Any:
    """Try parsing JSON, first strictly then leniently."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return _LENIENT_DECODER.decode(text)
    except json.JSONDecodeError:
        pass
    raise json.JSONDecodeError("", text, 0)


def _normalize(result: Any, allow_list: bool) -> Any:
    """Coerce a parsed value into the shape the caller asked for.

    When a dict is expected but the model returned an array, the first
    dict element is used. Scalars are wrapped.
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        if allow_list:
            return result
        for item in result:
            if isinstance(item, dict):
                return item
        return {"items": result}
    return {"value": result}


def parse_json_response(text: str, allow_list: bool = False) -> Any:
    """Extract and parse JSON from LLM response text.

    Handles JSON wrapped in markdown code fences or surrounded by prose,
    and tolerates unescaped newlines inside JSON string values.

    Args:
        text: Raw model output.
        allow_list: Return top-level arrays as lists instead of coercing
            them into a dict.

    Raises:
        ValueError: If no JSON value can be recovered.
    """
    text = (text or "").strip()

    try:
        return _normalize(_try_loads(text), allow_list)
    except json.JSONDecodeError:
        pass

    match = _JSON_FENCE_RE.search(text)
    if match:
        try:
            return _normalize(_try_loads(match.group(1).strip()), allow_list)
        except json.JSONDecodeError:
            pass

    # Try the widest object/array span; arrays first when a list is wanted
    bounds = [("[", "]"), ("{", "}")] if allow_list else [("{", "}"), ("[", "]")]
    for start_char, end_char in bounds:
        start = text.find(start_char)
        end = text.rfind(end_char)
        if start != -1 and end != -1 and end > start:
            try:
                return _normalize(_try_loads(text[start:end + 1]), allow_list)
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Failed to parse JSON from LLM response: {text[:200]}...")
