"""LLM provider construction, validated responses and schema generation.

Design goals:
- Probe a provider once at construction and adapt to its token limit.
- One call for "text or JSON answer", retried with feedback on invalid output.
- Keep provider-specific transports (openai SDK, Ollama HTTP) isolated.
"""

from .base import ProviderConfig
from .diagnostics import DiagnosisReport, diagnose_llm_connection
from .errors import (
    ConfigurationError,
    LLMError,
    LLMTransportError,
    LLMValidationError,
    OllamaError,
    SchemaGenerationError,
)
from .factory import create_provider, llm_ollama, llm_provider, resolve_api_key
from .prompting import (
    Prompt,
    answer_as_json,
    answer_as_text,
    llm_feedback,
    prompt_wrap,
    send_prompt,
    set_prompt,
)
from .response import get_llm_response
from .schema import (
    extract_schema_only,
    format_as_python_code,
    generate_json_schema,
    validate_schema_candidate,
)
from .tokens import parse_max_tokens
from .types import (
    FeedbackAction,
    FeedbackChoice,
    LLMMessage,
    ProbeOutcome,
    ResponseTrace,
    SchemaResult,
    TestMode,
)

__all__ = [
    "ConfigurationError",
    "DiagnosisReport",
    "FeedbackAction",
    "FeedbackChoice",
    "LLMError",
    "LLMMessage",
    "LLMTransportError",
    "LLMValidationError",
    "OllamaError",
    "ProbeOutcome",
    "Prompt",
    "ProviderConfig",
    "ResponseTrace",
    "SchemaGenerationError",
    "SchemaResult",
    "TestMode",
    "answer_as_json",
    "answer_as_text",
    "create_provider",
    "diagnose_llm_connection",
    "extract_schema_only",
    "format_as_python_code",
    "generate_json_schema",
    "get_llm_response",
    "llm_feedback",
    "llm_ollama",
    "llm_provider",
    "parse_max_tokens",
    "prompt_wrap",
    "resolve_api_key",
    "send_prompt",
    "set_prompt",
    "validate_schema_candidate",
]
