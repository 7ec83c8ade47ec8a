from __future__ import annotations

import json
from typing import Any, Callable, Mapping, Optional

import requests

from llmhelper import logger as logger_mod

from .base import ChatTransport, ProviderConfig
from .errors import LLMTransportError
from .types import ChatResult, LLMMessage

log = logger_mod.get_logger()

# Sampling parameters Ollama expects under "options" rather than top level.
_OPTION_KEYS = {
    "temperature",
    "top_p",
    "top_k",
    "seed",
    "stop",
    "num_ctx",
    "num_predict",
    "repeat_penalty",
}


class OllamaChatTransport(ChatTransport):
    """Chat completions against Ollama's native ``/api/chat`` endpoint."""

    def __init__(self, config: ProviderConfig):
        self._cfg = config

    def _body(
        self, messages: list[LLMMessage], parameters: Mapping[str, Any], stream: bool
    ) -> dict[str, Any]:
        options: dict[str, Any] = {}
        body: dict[str, Any] = {
            "model": self._cfg.model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        for key, value in parameters.items():
            if value is None:
                continue
            if key == "max_tokens":
                options["num_predict"] = value
            elif key in _OPTION_KEYS:
                options[key] = value
            else:
                body[key] = value
        if options:
            body["options"] = options
        return body

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        parameters: Mapping[str, Any],
        stream: bool = False,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> ChatResult:
        body = self._body(messages, parameters, stream)
        try:
            resp = requests.post(
                self._cfg.url, json=body, timeout=self._cfg.timeout_s, stream=stream
            )
        except requests.RequestException as e:
            raise LLMTransportError(f"Ollama request failed: {e}") from e

        if resp.status_code >= 400:
            text = resp.text
            raise LLMTransportError(
                f"Ollama API error (status {resp.status_code}): {text[:500]}",
                status_code=resp.status_code,
                body=text,
            )

        if not stream:
            try:
                data = resp.json()
            except ValueError as e:
                raise LLMTransportError(
                    f"Ollama returned a non-JSON response: {e}",
                    status_code=resp.status_code,
                    body=resp.text,
                ) from e
            if not isinstance(data, dict):
                raise LLMTransportError(
                    "Ollama returned an unexpected response shape",
                    status_code=resp.status_code,
                    body=resp.text,
                )
            content = (data.get("message") or {}).get("content") or ""
            return ChatResult(text=content.strip(), raw=data)

        parts: list[str] = []
        records: list[dict[str, Any]] = []
        try:
            for line in resp.iter_lines(decode_unicode=True):
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except ValueError:
                    log.debug(f"Skipping malformed stream line: {line[:120]!r}")
                    continue
                if not isinstance(record, dict):
                    continue
                if record.get("error"):
                    raise LLMTransportError(f"Ollama stream error: {record['error']}")
                records.append(record)
                delta = (record.get("message") or {}).get("content") or ""
                if delta:
                    parts.append(delta)
                    if on_chunk:
                        on_chunk(delta)
                if record.get("done"):
                    break
        except requests.RequestException as e:
            raise LLMTransportError(f"Ollama stream interrupted: {e}") from e

        return ChatResult(text="".join(parts).strip(), raw=records)
