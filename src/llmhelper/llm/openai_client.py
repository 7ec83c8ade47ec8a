from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Optional

import openai
from openai import OpenAI

from .base import ChatTransport, ProviderConfig
from .errors import LLMTransportError
from .types import ChatResult, LLMMessage

# Keyword arguments the SDK accepts directly; anything else goes through
# `extra_body` so provider-specific parameters still reach the endpoint.
_SDK_KWARGS = {
    "temperature",
    "max_tokens",
    "max_completion_tokens",
    "response_format",
    "top_p",
    "seed",
    "stop",
    "presence_penalty",
    "frequency_penalty",
    "logit_bias",
    "n",
    "user",
}


def sdk_base_url(url: str) -> str:
    """Turn a full chat-completions URL into the SDK's base URL."""
    return re.sub(r"/chat/completions/?$", "", url.rstrip("/"))


class OpenAIChatTransport(ChatTransport):
    """OpenAI-compatible chat completions via the `openai` SDK.

    The SDK's own retries are disabled; retry policy lives in `_retry`.
    """

    def __init__(self, config: ProviderConfig, client: Optional[OpenAI] = None):
        self._cfg = config
        self._client = client or OpenAI(
            api_key=config.api_key or "none",
            base_url=sdk_base_url(config.url),
            timeout=config.timeout_s,
            max_retries=0,
        )

    def _request_kwargs(self, parameters: Mapping[str, Any]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in parameters.items():
            if value is None:
                continue
            if key in _SDK_KWARGS:
                kwargs[key] = value
            else:
                extra[key] = value
        if extra:
            kwargs["extra_body"] = extra
        return kwargs

    def _extract_output_text(self, resp: Any) -> str:
        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if isinstance(content, str):
            return content.strip()

        # Some compatible servers answer in the Responses API shape.
        text = getattr(resp, "output_text", None)
        if isinstance(text, str):
            return text.strip()

        raise LLMTransportError("Unable to extract text from OpenAI response")

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        parameters: Mapping[str, Any],
        stream: bool = False,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> ChatResult:
        kwargs = self._request_kwargs(parameters)
        payload = [m.to_dict() for m in messages]

        try:
            if stream:
                parts: list[str] = []
                for chunk in self._client.chat.completions.create(
                    model=self._cfg.model, messages=payload, stream=True, **kwargs
                ):
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta.content or ""
                    if delta:
                        parts.append(delta)
                        if on_chunk:
                            on_chunk(delta)
                text = "".join(parts).strip()
                return ChatResult(text=text, raw={"streamed": True, "text": text})

            resp = self._client.chat.completions.create(
                model=self._cfg.model, messages=payload, **kwargs
            )
        except openai.APIStatusError as e:
            body = e.body if isinstance(e.body, str) else repr(e.body)
            raise LLMTransportError(
                f"OpenAI API error (status {e.status_code}): {e}",
                status_code=e.status_code,
                body=body,
            ) from e
        except openai.APIError as e:
            raise LLMTransportError(f"OpenAI request failed: {e}") from e

        raw = resp.model_dump() if hasattr(resp, "model_dump") else resp
        return ChatResult(text=self._extract_output_text(resp), raw=raw)
