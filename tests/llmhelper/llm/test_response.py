import pytest

from llmhelper.llm.errors import ConfigurationError
from llmhelper.llm.response import get_llm_response
from llmhelper.llm.types import ResponseTrace

SCHEMA = {
    "name": "gene_info",
    "description": "Basic facts about a gene",
    "schema": {
        "type": "object",
        "properties": {
            "symbol": {"type": "string"},
            "chromosome": {"type": "string"},
        },
        "required": ["symbol", "chromosome"],
    },
}


def test_text_response(provider, scripted_chat):
    chat = scripted_chat("A p-value measures evidence against the null.")
    out = get_llm_response("What is a p-value?", provider, max_words=20)

    assert out == "A p-value measures evidence against the null."
    assert "at most 20 words" in chat.calls[0]["messages"][-1].content


def test_text_response_retries_until_within_limits(provider, scripted_chat):
    chat = scripted_chat("x" * 50, "short")
    out = get_llm_response("Answer", provider, max_characters=10)

    assert out == "short"
    assert len(chat.calls) == 2


def test_json_response_parsed_and_validated(provider, scripted_chat):
    chat = scripted_chat(
        '```json\n{"symbol": "TP53"}\n```',
        '{"symbol": "TP53", "chromosome": "17"}',
    )
    out = get_llm_response("Tell me about TP53", provider, json_schema=SCHEMA)

    assert out == {"symbol": "TP53", "chromosome": "17"}
    assert len(chat.calls) == 2
    assert chat.calls[0]["parameters"]["response_format"]["json_schema"]["name"] == "gene_info"


def test_json_response_text_based(provider, scripted_chat):
    chat = scripted_chat('{"symbol": "BRCA1", "chromosome": "17"}')
    out = get_llm_response(
        "BRCA1?", provider, json_schema=SCHEMA, schema_type="text-based"
    )
    assert out["symbol"] == "BRCA1"
    assert "response_format" not in chat.calls[0]["parameters"]


def test_exhaustion_returns_none(provider, scripted_chat):
    chat = scripted_chat("a b c", "d e f")
    assert get_llm_response("x", provider, max_retries=2, max_words=1) is None
    assert len(chat.calls) == 2


def test_full_return_mode(provider, scripted_chat):
    scripted_chat("hello")
    trace = get_llm_response("hi", provider, return_mode="full")
    assert isinstance(trace, ResponseTrace)
    assert trace.response == "hello"
    assert trace.interactions == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": 0},
        {"max_retries": -1},
        {"max_retries": 2.5},
        {"max_words": 0},
        {"max_characters": True},
        {"return_mode": "everything"},
        {"schema_type": "xml"},
    ],
)
def test_invalid_arguments_fail_before_any_request(provider, scripted_chat, kwargs):
    chat = scripted_chat()
    with pytest.raises(ConfigurationError):
        get_llm_response("x", provider, **kwargs)
    assert chat.calls == []


def test_llm_client_must_be_provider_config(scripted_chat):
    chat = scripted_chat()
    with pytest.raises(ConfigurationError):
        get_llm_response("x", {"model": "gpt"})
    assert chat.calls == []
