from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ._retry import RetryConfig, execute_with_retry
from .base import ChatTransport, ProviderConfig
from .errors import ConfigurationError
from .ollama_client import OllamaChatTransport
from .openai_client import OpenAIChatTransport
from .types import ChatResult, LLMMessage


def build_transport(config: ProviderConfig) -> ChatTransport:
    """Factory for transports.

    API types:
    - openai (any OpenAI-compatible endpoint)
    - ollama
    """

    if config.api_type == "openai":
        return OpenAIChatTransport(config)
    if config.api_type == "ollama":
        return OllamaChatTransport(config)

    raise ConfigurationError(f"Unknown API type: {config.api_type}")


def chat_completion(
    config: ProviderConfig,
    messages: list[LLMMessage],
    *,
    parameters: Optional[Mapping[str, Any]] = None,
    stream: bool = False,
    on_chunk: Optional[Callable[[str], None]] = None,
    retry: Optional[RetryConfig] = None,
) -> ChatResult:
    """Send one chat completion request for `config`."""

    params = config.request_parameters()
    params.update(parameters or {})
    transport = build_transport(config)
    return execute_with_retry(
        lambda: transport.complete(
            messages, parameters=params, stream=stream, on_chunk=on_chunk
        ),
        context=f"calling {config.model}",
        retry=retry,
    )
