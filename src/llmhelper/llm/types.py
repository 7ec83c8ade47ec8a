from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from .errors import ConfigurationError

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class LLMMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ChatResult:
    """Provider-neutral result of one completion."""

    text: str
    raw: Any = None


@dataclass(frozen=True)
class ProbeOutcome:
    success: bool
    adjusted_max_tokens: Optional[int] = None
    reason: Optional[str] = None
    # Number of requests sent after the first one.
    retries: int = 0


@dataclass(frozen=True)
class ResponseTrace:
    """Everything `send_prompt` knows about one exchange (``return_mode="full"``)."""

    response: Any
    interactions: int
    chat_history: list[LLMMessage]
    chat_history_clean: list[LLMMessage]
    start_time: datetime.datetime
    end_time: datetime.datetime
    duration_seconds: float
    http_list: list[Any] = field(default_factory=list)


class _ChoiceEnum(str, Enum):
    @classmethod
    def coerce(cls, value: Any):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        aliases = getattr(cls, "_aliases", lambda: {})()
        if key in aliases:
            return cls(aliases[key])
        allowed = ", ".join(m.value for m in cls)
        raise ConfigurationError(
            f"Invalid {cls.__name__} {value!r}; expected one of: {allowed}"
        )


class TestMode(_ChoiceEnum):
    __test__ = False  # not a pytest class

    FULL = "full"
    HTTP_ONLY = "http_only"
    SKIP = "skip"

    @staticmethod
    def _aliases() -> dict[str, str]:
        return {"http-only": "http_only", "transport-only": "http_only"}


class ReturnMode(_ChoiceEnum):
    ONLY_RESPONSE = "only_response"
    FULL = "full"

    @staticmethod
    def _aliases() -> dict[str, str]:
        return {"response-only": "only_response", "full-trace": "full"}


class SchemaType(_ChoiceEnum):
    """How a JSON answer is requested from the provider."""

    AUTO = "auto"
    TEXT_BASED = "text-based"
    NATIVE = "native"
    NATIVE_NO_SCHEMA = "native-no-schema"

    @staticmethod
    def _aliases() -> dict[str, str]:
        return {
            "text_based": "text-based",
            "openai": "native",
            "ollama": "native",
            "openai_oo": "native-no-schema",
            "ollama_oo": "native-no-schema",
        }


# --- Schema negotiation ---


class FeedbackAction(str, Enum):
    ACCEPT = "accept"
    MODIFY = "modify"
    INSPECT = "inspect"
    SHOW_CODE = "show_code"
    RESTART = "restart"


@dataclass(frozen=True)
class FeedbackChoice:
    action: FeedbackAction
    text: Optional[str] = None


@dataclass(frozen=True)
class SchemaDraft:
    iteration: int
    prompt: str
    schema: dict[str, Any]
    timestamp: datetime.datetime


@dataclass
class ConversationState:
    """Mutable state of one schema negotiation."""

    description: str
    iteration: int = 1
    current_schema: Optional[dict[str, Any]] = None
    user_feedback: Optional[str] = None
    history: list[SchemaDraft] = field(default_factory=list)
    satisfied: bool = False


@dataclass(frozen=True)
class SchemaResult:
    schema: Optional[dict[str, Any]]
    description: str
    iterations: int
    history: list[SchemaDraft]
    satisfied: bool
