from __future__ import annotations

from typing import Optional


class LLMError(RuntimeError):
    pass


class ConfigurationError(LLMError, ValueError):
    """Raised for invalid arguments or missing credentials. Never retried."""


class LLMValidationError(LLMError):
    """Raised when the model output cannot be validated against the requested schema."""


class LLMTransportError(LLMError):
    """HTTP or network failure while talking to a chat endpoint."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SchemaGenerationError(LLMError):
    """A schema drafting step failed for a reason other than validation."""


class OllamaError(LLMError):
    """Server-reported failure of an Ollama model-management operation."""
