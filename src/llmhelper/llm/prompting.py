"""Prompt objects and the validated send loop.

A `Prompt` is a base text plus an ordered stack of `PromptWrap`s. Each wrap
may rewrite the prompt text, contribute provider parameters, and extract or
validate the model's reply. Rejecting a reply means returning an
`LLMFeedback`; its text goes back to the model as the next user turn, until
the interaction budget runs out.
"""

from __future__ import annotations

import datetime
import json
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Union

from rich.console import Console

from llmhelper import config
from llmhelper import logger as logger_mod

from . import transport
from ._json import parse_json, strict_schema, validate_json
from ._retry import RetryConfig
from .base import ProviderConfig
from .errors import ConfigurationError, LLMValidationError
from .types import LLMMessage, ResponseTrace, ReturnMode, SchemaType

log = logger_mod.get_logger()

_console = Console()


def preview_text(v: Any, limit: int = 200) -> str:
    """Single-line, length-capped rendering of a value for log messages."""
    if v is None:
        return ""
    s = re.sub(r"\s+", " ", str(v)).strip()
    if len(s) <= limit:
        return s
    return s[: limit - 1] + "…"


@dataclass(frozen=True)
class LLMFeedback:
    """Returned by an extraction/validation function to reject a reply."""

    text: str

    def __str__(self) -> str:
        return self.text


def llm_feedback(text: str) -> LLMFeedback:
    return LLMFeedback(text=str(text))


@dataclass(frozen=True)
class PromptWrap:
    name: str = "wrap"
    modify_fn: Optional[Callable[[str], str]] = None
    extraction_fn: Optional[Callable[[Any], Any]] = None
    validation_fn: Optional[Callable[[Any], Any]] = None
    parameter_fn: Optional[Callable[[ProviderConfig], Mapping[str, Any]]] = None


@dataclass(frozen=True)
class Prompt:
    base_prompt: str
    system_prompt: Optional[str] = None
    wraps: tuple[PromptWrap, ...] = ()

    def wrap(self, wrap: PromptWrap) -> "Prompt":
        return replace(self, wraps=self.wraps + (wrap,))

    def construct_prompt_text(self) -> str:
        text = self.base_prompt
        for w in self.wraps:
            if w.modify_fn is not None:
                text = w.modify_fn(text)
        return text

    def initial_messages(self) -> list[LLMMessage]:
        messages: list[LLMMessage] = []
        if self.system_prompt:
            messages.append(LLMMessage("system", self.system_prompt))
        messages.append(LLMMessage("user", self.construct_prompt_text()))
        return messages

    def provider_parameters(self, provider: ProviderConfig) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for w in self.wraps:
            if w.parameter_fn is not None:
                params.update(w.parameter_fn(provider))
        return params


PromptLike = Union[str, Prompt]


def ensure_prompt(prompt: PromptLike) -> Prompt:
    if isinstance(prompt, Prompt):
        return prompt
    if isinstance(prompt, str):
        return Prompt(base_prompt=prompt)
    raise ConfigurationError(
        f"prompt must be a string or Prompt, got {type(prompt).__name__}"
    )


def set_prompt(
    system: str = config.DEFAULT_SYSTEM_PROMPT, user: str = "Hi"
) -> Prompt:
    """Create a prompt with a system prompt and a user message."""
    return Prompt(base_prompt=user, system_prompt=system)


def prompt_wrap(
    prompt: PromptLike,
    *,
    modify_fn: Optional[Callable[[str], str]] = None,
    extraction_fn: Optional[Callable[[Any], Any]] = None,
    validation_fn: Optional[Callable[[Any], Any]] = None,
    parameter_fn: Optional[Callable[[ProviderConfig], Mapping[str, Any]]] = None,
    name: str = "custom",
) -> Prompt:
    return ensure_prompt(prompt).wrap(
        PromptWrap(
            name=name,
            modify_fn=modify_fn,
            extraction_fn=extraction_fn,
            validation_fn=validation_fn,
            parameter_fn=parameter_fn,
        )
    )


# --- Answer modes ---


def answer_as_text(
    prompt: PromptLike,
    max_words: Optional[int] = None,
    max_characters: Optional[int] = None,
) -> Prompt:
    """Ask for a plain-text answer, optionally bounded in words/characters."""

    def modify(text: str) -> str:
        lines = [text, "", "You must respond with plain text."]
        if max_words is not None:
            lines.append(f"Your response must be at most {max_words} words long.")
        if max_characters is not None:
            lines.append(
                f"Your response must be at most {max_characters} characters long."
            )
        return "\n".join(lines)

    def validate(response: Any):
        text = response if isinstance(response, str) else str(response)
        if max_words is not None:
            n_words = len(text.split())
            if n_words > max_words:
                return llm_feedback(
                    f"Your response is {n_words} words long but must be at most "
                    f"{max_words} words. Please shorten it."
                )
        if max_characters is not None and len(text) > max_characters:
            return llm_feedback(
                f"Your response is {len(text)} characters long but must be at most "
                f"{max_characters} characters. Please shorten it."
            )
        return None

    return ensure_prompt(prompt).wrap(
        PromptWrap(name="answer_as_text", modify_fn=modify, validation_fn=validate)
    )


def split_schema_object(schema: Optional[Mapping[str, Any]]):
    """Return ``(name, json_schema)`` for a schema object or a bare JSON schema."""

    if schema is None:
        return "response", None
    if not isinstance(schema, Mapping):
        raise ConfigurationError("json_schema must be a mapping")
    inner = schema.get("schema")
    if isinstance(inner, Mapping):
        return str(schema.get("name") or "response"), dict(inner)
    return "response", dict(schema)


def answer_as_json(
    prompt: PromptLike,
    schema: Optional[Mapping[str, Any]] = None,
    schema_strict: bool = False,
    type: Union[str, SchemaType] = SchemaType.AUTO,
) -> Prompt:
    """Ask for a JSON answer, parsed and optionally validated against `schema`.

    `schema` may be a bare JSON schema or a ``{name, description, schema}``
    object. ``type`` picks how the request is encoded:

    - ``auto``: provider-native JSON mode (with the schema when one is given)
    - ``text-based``: prompt instructions only
    - ``native``: provider-native mode carrying the schema
    - ``native-no-schema``: provider-native JSON mode, schema in the prompt text
    """

    mode = SchemaType.coerce(type)
    name, json_schema = split_schema_object(schema)
    if mode is SchemaType.AUTO:
        mode = SchemaType.NATIVE if json_schema else SchemaType.NATIVE_NO_SCHEMA

    check_schema = json_schema
    if json_schema is not None and schema_strict:
        check_schema = strict_schema(json_schema)

    def modify(text: str) -> str:
        out = f"{text}\n\nYou must format your response as a JSON object."
        if check_schema is not None and mode is not SchemaType.NATIVE:
            out += (
                "\n\nYour JSON object must match this JSON schema:\n```json\n"
                f"{json.dumps(check_schema, indent=2)}\n```"
            )
        return out

    def parameters(provider: ProviderConfig) -> dict[str, Any]:
        if mode is SchemaType.TEXT_BASED:
            return {}
        if mode is SchemaType.NATIVE and check_schema is not None:
            if provider.api_type == "ollama":
                return {"format": check_schema}
            return {
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {
                        "name": name,
                        "schema": check_schema,
                        "strict": bool(schema_strict),
                    },
                }
            }
        if provider.api_type == "ollama":
            return {"format": "json"}
        return {"response_format": {"type": "json_object"}}

    def extract(response: Any):
        if not isinstance(response, str):
            return response
        try:
            return parse_json(response)
        except LLMValidationError as e:
            return llm_feedback(
                "Your response could not be parsed as JSON "
                f"({e}). Please respond with a single valid JSON object only."
            )

    def validate(response: Any):
        if check_schema is None:
            return None
        try:
            validate_json(response, check_schema)
        except LLMValidationError as e:
            return llm_feedback(
                f"Your response did not match the required JSON schema. {e}. "
                "Please correct your response."
            )
        return None

    return ensure_prompt(prompt).wrap(
        PromptWrap(
            name="answer_as_json",
            modify_fn=modify,
            extraction_fn=extract,
            validation_fn=validate,
            parameter_fn=parameters,
        )
    )


# --- Send loop ---


def clean_history(messages: list[LLMMessage]) -> list[LLMMessage]:
    """Keep the first and last user turns, the last assistant turn and all system turns."""

    users = [i for i, m in enumerate(messages) if m.role == "user"]
    assistants = [i for i, m in enumerate(messages) if m.role == "assistant"]
    keep = {i for i, m in enumerate(messages) if m.role == "system"}
    if users:
        keep.update((users[0], users[-1]))
    if assistants:
        keep.add(assistants[-1])
    return [m for i, m in enumerate(messages) if i in keep]


def _process_reply(prompt: Prompt, text: str):
    value: Any = text
    for w in reversed(prompt.wraps):
        if w.extraction_fn is None:
            continue
        out = w.extraction_fn(value)
        if isinstance(out, LLMFeedback):
            return None, out
        value = out

    for w in reversed(prompt.wraps):
        if w.validation_fn is None:
            continue
        out = w.validation_fn(value)
        if isinstance(out, LLMFeedback):
            return None, out

    return value, None


def _echo(chunk: str) -> None:
    _console.print(chunk, end="", markup=False, highlight=False)


def send_prompt(
    prompt: PromptLike,
    llm_provider: ProviderConfig,
    max_interactions: int = 10,
    verbose: Optional[bool] = None,
    stream: Optional[bool] = None,
    clean_chat_history: bool = True,
    return_mode: Union[str, ReturnMode] = ReturnMode.ONLY_RESPONSE,
    retry: Optional[RetryConfig] = None,
):
    """Send `prompt` and loop on feedback until a reply passes every wrap.

    Returns the processed reply, a `ResponseTrace` when ``return_mode="full"``,
    or None when `max_interactions` is exhausted. Transport failures raise
    `LLMTransportError`.
    """

    prompt = ensure_prompt(prompt)
    if isinstance(max_interactions, bool) or not isinstance(max_interactions, int):
        raise ConfigurationError("max_interactions must be a positive integer")
    if max_interactions < 1:
        raise ConfigurationError("max_interactions must be a positive integer")
    mode = ReturnMode.coerce(return_mode)

    verbose = llm_provider.verbose if verbose is None else bool(verbose)
    stream = (llm_provider.stream if stream is None else bool(stream)) and verbose
    say = log.info if verbose else log.debug

    parameters = prompt.provider_parameters(llm_provider)
    history = prompt.initial_messages()
    full_history = list(history)
    http_list: list[Any] = []

    start_time = datetime.datetime.now()
    t0 = time.monotonic()
    response: Any = None
    succeeded = False
    interactions = 0

    say(f"💬 Prompt for {llm_provider.model}: {preview_text(history[-1].content)}")

    while interactions < max_interactions:
        interactions += 1
        result = transport.chat_completion(
            llm_provider,
            history,
            parameters=parameters,
            stream=stream,
            on_chunk=_echo if stream else None,
            retry=retry,
        )
        if stream:
            _console.print()
        http_list.append(result.raw)

        reply = LLMMessage("assistant", result.text)
        history.append(reply)
        full_history.append(reply)
        say(f"🤖 Reply {interactions}/{max_interactions}: {preview_text(result.text)}")

        value, feedback = _process_reply(prompt, result.text)
        if feedback is None:
            response = value
            succeeded = True
            break

        say(f"⚠️ Reply rejected: {feedback.text}")
        turn = LLMMessage("user", feedback.text)
        history.append(turn)
        full_history.append(turn)
        if clean_chat_history:
            history = clean_history(history)

    if not succeeded:
        log.warning(
            f"⚠️ No valid response from {llm_provider.model} after "
            f"{interactions} interaction(s)"
        )

    if mode is ReturnMode.FULL:
        return ResponseTrace(
            response=response,
            interactions=interactions,
            chat_history=full_history,
            chat_history_clean=clean_history(full_history),
            start_time=start_time,
            end_time=datetime.datetime.now(),
            duration_seconds=time.monotonic() - t0,
            http_list=http_list,
        )
    return response
