import dataclasses

import pytest

from llmhelper.llm.base import ProviderConfig
from llmhelper.llm.errors import ConfigurationError
from llmhelper.llm.types import (
    LLMMessage,
    ProbeOutcome,
    ReturnMode,
    SchemaType,
    TestMode,
)

# =====================================================
# ProviderConfig
# =====================================================


def test_provider_config_is_immutable(provider):
    with pytest.raises(dataclasses.FrozenInstanceError):
        provider.max_tokens = 10
    with pytest.raises(TypeError):
        provider.parameters["seed"] = 1


def test_with_max_tokens_returns_copy_and_drops_probe(provider):
    probed = provider.with_probe(ProbeOutcome(success=True))
    adjusted = probed.with_max_tokens(8192)

    assert adjusted.max_tokens == 8192
    assert adjusted.probe is None
    assert probed.max_tokens == 5000
    assert probed.probe_succeeded is True
    assert provider.probe_succeeded is None


def test_equality_ignores_provenance(provider):
    other = dataclasses.replace(
        provider, credential_source="env:LLM_API_KEY", probe=ProbeOutcome(False)
    )
    assert other == provider
    assert hash(other) == hash(provider)


def test_request_parameters_merges_extra_parameters():
    cfg = ProviderConfig(
        api_type="openai",
        url="https://x/v1/chat/completions",
        model="m",
        temperature=0.7,
        max_tokens=100,
        parameters={"seed": 42, "temperature": 0.1},
    )
    assert cfg.request_parameters() == {"temperature": 0.1, "max_tokens": 100, "seed": 42}


def test_repr_masks_api_key(provider):
    text = repr(provider)
    assert "sk-test" not in text
    assert "***" in text


def test_llm_message_to_dict():
    assert LLMMessage("user", "hi").to_dict() == {"role": "user", "content": "hi"}


# =====================================================
# Choice enums
# =====================================================


@pytest.mark.parametrize(
    "value, expected",
    [
        ("full", TestMode.FULL),
        ("HTTP_ONLY", TestMode.HTTP_ONLY),
        ("http-only", TestMode.HTTP_ONLY),
        ("transport-only", TestMode.HTTP_ONLY),
        (" skip ", TestMode.SKIP),
        (TestMode.SKIP, TestMode.SKIP),
    ],
)
def test_test_mode_coerce(value, expected):
    assert TestMode.coerce(value) is expected


def test_schema_type_aliases():
    assert SchemaType.coerce("openai") is SchemaType.NATIVE
    assert SchemaType.coerce("ollama") is SchemaType.NATIVE
    assert SchemaType.coerce("openai_oo") is SchemaType.NATIVE_NO_SCHEMA
    assert SchemaType.coerce("text_based") is SchemaType.TEXT_BASED
    assert SchemaType.coerce("auto") is SchemaType.AUTO


def test_return_mode_coerce():
    assert ReturnMode.coerce("full") is ReturnMode.FULL
    assert ReturnMode.coerce("response-only") is ReturnMode.ONLY_RESPONSE


def test_invalid_choice_lists_allowed_values():
    with pytest.raises(ConfigurationError) as exc:
        SchemaType.coerce("yaml")
    assert "native-no-schema" in str(exc.value)

    with pytest.raises(ConfigurationError):
        TestMode.coerce(None)
