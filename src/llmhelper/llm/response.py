from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from llmhelper import logger as logger_mod

from . import prompting
from .base import ProviderConfig
from .errors import ConfigurationError
from .types import ReturnMode, SchemaType

log = logger_mod.get_logger()


def _check_positive(name: str, value: Any, *, required: bool = False) -> None:
    if value is None and not required:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{name} must be a positive integer")


def get_llm_response(
    prompt: prompting.PromptLike,
    llm_client: ProviderConfig,
    max_retries: int = 5,
    max_words: Optional[int] = None,
    max_characters: Optional[int] = None,
    json_schema: Optional[Mapping[str, Any]] = None,
    schema_strict: bool = False,
    schema_type: Union[str, SchemaType] = SchemaType.AUTO,
    verbose: Optional[bool] = None,
    stream: Optional[bool] = None,
    clean_chat_history: bool = True,
    return_mode: Union[str, ReturnMode] = ReturnMode.ONLY_RESPONSE,
):
    """Get a text or JSON response from an LLM.

    Without `json_schema` the reply is plain text, optionally bounded by
    `max_words` / `max_characters`. With a schema (a bare JSON schema or a
    ``{name, description, schema}`` object) the reply is parsed and
    validated, and `schema_type` chooses how JSON output is requested:
    ``auto``, ``text-based``, ``native`` or ``native-no-schema``.

    Replies that fail validation are sent back with feedback, for at most
    `max_retries` exchanges in total. `clean_chat_history` keeps only the
    first/last user turns, the last assistant turn and system turns between
    attempts.

    Returns the response (``str`` or parsed JSON), a `ResponseTrace` when
    ``return_mode="full"``, or None when every attempt was rejected.

    Raises:
        ConfigurationError: on invalid arguments, before any request is sent.
        LLMTransportError: when the endpoint cannot be reached.
    """

    _check_positive("max_retries", max_retries, required=True)
    _check_positive("max_words", max_words)
    _check_positive("max_characters", max_characters)
    mode = ReturnMode.coerce(return_mode)
    schema_mode = SchemaType.coerce(schema_type)
    if not isinstance(llm_client, ProviderConfig):
        raise ConfigurationError("llm_client must be a ProviderConfig")

    if json_schema is None:
        wrapped = prompting.answer_as_text(
            prompt, max_words=max_words, max_characters=max_characters
        )
    else:
        if max_words is not None or max_characters is not None:
            log.debug("max_words/max_characters are ignored for JSON responses")
        wrapped = prompting.answer_as_json(
            prompt, schema=json_schema, schema_strict=schema_strict, type=schema_mode
        )

    return prompting.send_prompt(
        wrapped,
        llm_client,
        max_interactions=max_retries,
        verbose=verbose,
        stream=stream,
        clean_chat_history=clean_chat_history,
        return_mode=mode,
    )
