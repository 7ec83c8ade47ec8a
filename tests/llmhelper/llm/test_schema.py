import json

import pytest

from llmhelper.llm import schema as schema_mod
from llmhelper.llm.errors import (
    ConfigurationError,
    LLMTransportError,
    SchemaGenerationError,
)
from llmhelper.llm.prompting import LLMFeedback
from llmhelper.llm.schema import (
    extract_schema_only,
    format_as_python_code,
    generate_json_schema,
    validate_schema_candidate,
)
from llmhelper.llm.types import FeedbackAction, FeedbackChoice, SchemaResult


def _draft(name="person", **props):
    props = props or {"name": "string"}
    return {
        "name": name,
        "description": f"A {name}",
        "schema": {
            "type": "object",
            "properties": {k: {"type": t} for k, t in props.items()},
            "required": list(props),
            "additionalProperties": False,
        },
    }


class FakePresenter:
    """Scripted reviewer: returns queued choices and records what was shown."""

    def __init__(self, *choices):
        self.choices = list(choices)
        self.presented = []
        self.shown = []

    def present(self, state):
        self.presented.append((state.iteration, state.current_schema))
        return self.choices.pop(0)

    def show(self, text, lexer="json"):
        self.shown.append((lexer, text))


@pytest.fixture(autouse=True)
def _no_preview(monkeypatch):
    monkeypatch.setattr(schema_mod, "print_schema_preview", lambda *_a, **_k: None)


# =====================================================
# validate_schema_candidate
# =====================================================


def test_validate_schema_candidate_accepts_complete_draft():
    assert validate_schema_candidate(_draft()) is None


@pytest.mark.parametrize(
    "candidate, fragment",
    [
        ("not a dict", "must be a valid JSON object"),
        ({"name": "x", "schema": {"type": "object"}}, "Missing required components: description"),
        ({"name": "x", "description": "d", "schema": "nope"}, "'schema' component must be"),
        ({"name": "x", "description": "d", "schema": {}}, "must include a 'type'"),
        (
            {"name": "x", "description": "d", "schema": {"type": "object"}},
            "should include 'properties'",
        ),
        (
            {"name": "x", "description": "d", "schema": {"type": "object", "properties": ["a"]}},
            "should include 'properties'",
        ),
        (
            {"name": "x", "description": "d", "schema": {"type": "object", "properties": {}}},
            "should include 'properties'",
        ),
        (
            {"name": " ", "description": "d", "schema": {"type": "string"}},
            "'name' field must be a non-empty string",
        ),
        (
            {"name": "x", "description": 3, "schema": {"type": "string"}},
            "'description' field must be a non-empty string",
        ),
    ],
)
def test_validate_schema_candidate_feedback(candidate, fragment):
    feedback = validate_schema_candidate(candidate)
    assert isinstance(feedback, LLMFeedback)
    assert fragment in feedback.text


# =====================================================
# extract_schema_only / format_as_python_code
# =====================================================


def test_extract_schema_only_unwraps_one_level():
    assert extract_schema_only({"name": "n", "schema": {"type": "object"}}) == {"type": "object"}
    nested = {"schema": {"schema": {"type": "string"}}}
    assert extract_schema_only(nested) == {"schema": {"type": "string"}}


def test_extract_schema_only_passthrough():
    bare = {"type": "object", "properties": {}}
    assert extract_schema_only(bare) is bare
    assert extract_schema_only("text") == "text"
    assert extract_schema_only(None) is None


def test_extract_schema_only_from_result():
    result = SchemaResult(
        schema=_draft(), description="d", iterations=1, history=[], satisfied=True
    )
    assert extract_schema_only(result) == _draft()


def test_format_as_python_code_preserves_key_order():
    code = format_as_python_code({"b": 1, "a": False}, variable_name="my_schema")
    assert code == "my_schema = {'b': 1, 'a': False}"


# =====================================================
# generate_json_schema
# =====================================================


def test_non_interactive_single_iteration(provider, scripted_chat, dummy_log):
    chat = scripted_chat(json.dumps(_draft()))
    result = generate_json_schema(
        "A person with a name", provider, max_iterations=1, interactive=False, verbose=False
    )

    assert result.satisfied is True
    assert result.iterations == 1
    assert result.schema == _draft()
    assert len(result.history) == 1
    assert result.history[0].iteration == 1
    assert "A person with a name" in result.history[0].prompt
    assert len(chat.calls) == 1


def test_invalid_draft_is_sent_back_within_one_iteration(provider, scripted_chat, dummy_log):
    chat = scripted_chat(
        json.dumps({"name": "p", "schema": {"type": "object"}}),
        json.dumps(_draft()),
    )
    result = generate_json_schema("person", provider, interactive=False, verbose=False)

    assert result.satisfied is True
    assert result.iterations == 1
    assert len(chat.calls) == 2
    assert "Missing required components" in chat.calls[1]["messages"][-1].content


def test_modify_then_accept(provider, scripted_chat, dummy_log):
    chat = scripted_chat(json.dumps(_draft()), json.dumps(_draft(name="person", age="integer")))
    presenter = FakePresenter(
        FeedbackChoice(FeedbackAction.MODIFY, "add an integer age"),
        FeedbackChoice(FeedbackAction.ACCEPT),
    )
    result = generate_json_schema("person", provider, presenter=presenter, verbose=False)

    assert result.satisfied is True
    assert result.iterations == 2
    assert [d.iteration for d in result.history] == [1, 2]
    assert "age" in result.schema["schema"]["properties"]

    refinement = chat.calls[1]["messages"][-1].content
    assert "User feedback: add an integer age" in refinement
    assert '"person"' in refinement


def test_inspect_and_show_code_loop_back_to_menu(provider, scripted_chat, dummy_log):
    scripted_chat(json.dumps(_draft()))
    presenter = FakePresenter(
        FeedbackChoice(FeedbackAction.INSPECT),
        FeedbackChoice(FeedbackAction.SHOW_CODE),
        FeedbackChoice(FeedbackAction.ACCEPT),
    )
    result = generate_json_schema("person", provider, presenter=presenter, verbose=False)

    assert result.satisfied is True
    assert [lexer for lexer, _ in presenter.shown] == ["json", "python"]
    assert presenter.shown[1][1].startswith("json_schema = {")
    assert len(presenter.presented) == 3


def test_empty_modify_feedback_keeps_current_schema(provider, scripted_chat, dummy_log):
    chat = scripted_chat(json.dumps(_draft()))
    presenter = FakePresenter(FeedbackChoice(FeedbackAction.MODIFY, "   "))
    result = generate_json_schema("person", provider, presenter=presenter, verbose=False)

    assert result.satisfied is True
    assert len(chat.calls) == 1
    assert any("No feedback provided" in m for m in dummy_log.messages("warning"))


def test_restart_uses_new_description(provider, scripted_chat, dummy_log):
    chat = scripted_chat(json.dumps(_draft()), json.dumps(_draft(name="car", make="string")))
    presenter = FakePresenter(
        FeedbackChoice(FeedbackAction.RESTART, ""),
        FeedbackChoice(FeedbackAction.RESTART, "A car with a make"),
        FeedbackChoice(FeedbackAction.ACCEPT),
    )
    result = generate_json_schema("person", provider, presenter=presenter, verbose=False)

    assert result.satisfied is True
    assert result.description == "A car with a make"
    assert result.schema["name"] == "car"
    assert result.iterations == 1
    assert [d.iteration for d in result.history] == [1, 1]
    assert "Description: A car with a make" in chat.calls[1]["messages"][-1].content


def test_iterations_exhausted_returns_last_draft(provider, scripted_chat, dummy_log):
    scripted_chat(json.dumps(_draft(name="v1")), json.dumps(_draft(name="v2")))
    presenter = FakePresenter(
        FeedbackChoice(FeedbackAction.MODIFY, "more"),
        FeedbackChoice(FeedbackAction.MODIFY, "even more"),
    )
    result = generate_json_schema(
        "thing", provider, max_iterations=2, presenter=presenter, verbose=False
    )

    assert result.satisfied is False
    assert result.iterations == 2
    assert result.schema["name"] == "v2"
    assert len(result.history) == 2


def test_drafting_exhaustion_ends_without_error(provider, scripted_chat, dummy_log):
    scripted_chat("nope", "still nope")
    result = generate_json_schema(
        "thing", provider, interactive=False, verbose=False, max_interactions=2
    )

    assert result.satisfied is False
    assert result.schema is None
    assert result.history == []
    assert result.iterations == 0


def test_transport_failure_raises_schema_generation_error(provider, scripted_chat, dummy_log):
    scripted_chat(LLMTransportError("down", status_code=500))
    with pytest.raises(SchemaGenerationError) as exc:
        generate_json_schema("thing", provider, interactive=False, verbose=False)
    assert isinstance(exc.value.__cause__, LLMTransportError)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"description": ""},
        {"description": "   "},
        {"max_iterations": 0},
        {"max_iterations": True},
    ],
)
def test_invalid_arguments(provider, scripted_chat, kwargs):
    chat = scripted_chat()
    args = {"description": "thing", "interactive": False, "verbose": False}
    args.update(kwargs)
    with pytest.raises(ConfigurationError):
        generate_json_schema(llm_client=provider, **args)
    assert chat.calls == []
