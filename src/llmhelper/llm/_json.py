from __future__ import annotations

import copy
import json
import re
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from .errors import LLMValidationError

_FENCED = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_json(text: str) -> Any:
    """Parse JSON from a model response.

    Accepts a bare document, a ```json fenced block, or prose wrapping a single
    object; the first candidate that parses wins.
    """

    if text is None:
        raise LLMValidationError("Failed to parse JSON: empty response")

    candidates = [text.strip()]
    candidates += [m.strip() for m in _FENCED.findall(text)]
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start, end = text.find(open_ch), text.rfind(close_ch)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    last_error: Exception | None = None
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except ValueError as e:
            last_error = e

    raise LLMValidationError(f"Failed to parse JSON: {last_error or 'no JSON found'}")


def strict_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Copy of `schema` where every object node forbids unspecified properties."""

    def _walk(node: Any) -> None:
        if isinstance(node, dict):
            if node.get("type") == "object" and "additionalProperties" not in node:
                node["additionalProperties"] = False
            for value in node.values():
                _walk(value)
        elif isinstance(node, list):
            for item in node:
                _walk(item)

    out = copy.deepcopy(schema)
    _walk(out)
    return out


def validate_json(instance: Any, schema: dict[str, Any]) -> None:
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise LLMValidationError(f"Invalid JSON schema: {e.message}") from e

    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        details = "; ".join(
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}"
            for e in errors[:5]
        )
        raise LLMValidationError(f"JSON schema validation failed: {details}")
