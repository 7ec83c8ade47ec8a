"""llmhelper

A convenience layer for talking to OpenAI-compatible and Ollama chat models:

    from llmhelper import llm_provider, get_llm_response

    client = llm_provider(model="gpt-4o-mini")
    answer = get_llm_response("What is a p-value?", client, max_words=50)

Environment variables: ``LLM_API_KEY`` (default key), ``OPENAI_API_KEY``,
``DEEPSEEK_API_KEY``, ``OLLAMA_HOST``, ``LOGGING_LEVEL``.
"""

from .helpers import build_prompt
from .llm import (
    ConfigurationError,
    LLMError,
    ProviderConfig,
    diagnose_llm_connection,
    extract_schema_only,
    generate_json_schema,
    get_llm_response,
    llm_ollama,
    llm_provider,
    set_prompt,
)
from .ollama import ollama_delete_model, ollama_download_model, ollama_list_models

__all__ = [
    "ConfigurationError",
    "LLMError",
    "ProviderConfig",
    "build_prompt",
    "diagnose_llm_connection",
    "extract_schema_only",
    "generate_json_schema",
    "get_llm_response",
    "llm_ollama",
    "llm_provider",
    "ollama_delete_model",
    "ollama_download_model",
    "ollama_list_models",
    "set_prompt",
]
