import pytest

from llmhelper.llm._json import parse_json, strict_schema, validate_json
from llmhelper.llm.errors import LLMValidationError

PERSON = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer"},
    },
    "required": ["name", "age"],
}


# =====================================================
# parse_json
# =====================================================


def test_parse_json_bare_document():
    assert parse_json('{"a": 1}') == {"a": 1}
    assert parse_json("  [1, 2]  ") == [1, 2]


def test_parse_json_fenced_block():
    text = 'Here you go:\n```json\n{"name": "Ada", "age": 36}\n```\nAnything else?'
    assert parse_json(text) == {"name": "Ada", "age": 36}


def test_parse_json_object_inside_prose():
    text = 'Sure! {"ok": true} Hope that helps.'
    assert parse_json(text) == {"ok": True}


def test_parse_json_failure_raises():
    with pytest.raises(LLMValidationError) as exc:
        parse_json("no json here")
    assert "Failed to parse JSON" in str(exc.value)

    with pytest.raises(LLMValidationError):
        parse_json(None)


# =====================================================
# strict_schema / validate_json
# =====================================================


def test_strict_schema_marks_nested_objects_without_mutating():
    schema = {
        "type": "object",
        "properties": {
            "inner": {"type": "object", "properties": {"x": {"type": "string"}}},
            "open": {"type": "object", "additionalProperties": True},
        },
    }
    out = strict_schema(schema)

    assert out["additionalProperties"] is False
    assert out["properties"]["inner"]["additionalProperties"] is False
    assert out["properties"]["open"]["additionalProperties"] is True
    assert "additionalProperties" not in schema


def test_validate_json_accepts_valid_instance():
    validate_json({"name": "Ada", "age": 36}, PERSON)


def test_validate_json_reports_paths():
    with pytest.raises(LLMValidationError) as exc:
        validate_json({"name": "Ada", "age": "old"}, PERSON)
    msg = str(exc.value)
    assert msg.startswith("JSON schema validation failed")
    assert "age" in msg


def test_validate_json_missing_required_reports_root():
    with pytest.raises(LLMValidationError) as exc:
        validate_json({"name": "Ada"}, PERSON)
    assert "<root>" in str(exc.value)


def test_validate_json_invalid_schema():
    with pytest.raises(LLMValidationError) as exc:
        validate_json({}, {"type": "not-a-type"})
    assert "Invalid JSON schema" in str(exc.value)
