from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Literal, Mapping, Optional, Protocol

from .types import ChatResult, LLMMessage, ProbeOutcome

ApiType = Literal["openai", "ollama"]


def _freeze(params: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(params or {}))


@dataclass(frozen=True)
class ProviderConfig:
    """How to reach and call one chat endpoint.

    Instances are never mutated; `with_max_tokens` and `with_probe` return
    copies. `credential_source` and `probe` describe where the configuration
    came from and are excluded from equality.
    """

    api_type: ApiType
    url: str
    model: str
    api_key: Optional[str] = None
    temperature: float = 0.2
    max_tokens: int = 5000
    timeout_s: float = 100.0
    stream: bool = False
    verbose: bool = True
    parameters: Mapping[str, Any] = field(default_factory=dict)

    credential_source: Optional[str] = field(default=None, compare=False)
    probe: Optional[ProbeOutcome] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.parameters, MappingProxyType):
            object.__setattr__(self, "parameters", _freeze(self.parameters))

    def __hash__(self) -> int:
        return hash(
            (
                self.api_type,
                self.url,
                self.model,
                self.temperature,
                self.max_tokens,
                self.timeout_s,
                self.stream,
            )
        )

    def with_max_tokens(self, max_tokens: int) -> "ProviderConfig":
        return dataclasses.replace(self, max_tokens=int(max_tokens), probe=None)

    def with_probe(self, outcome: Optional[ProbeOutcome]) -> "ProviderConfig":
        return dataclasses.replace(self, probe=outcome)

    @property
    def probe_succeeded(self) -> Optional[bool]:
        return None if self.probe is None else self.probe.success

    def request_parameters(self) -> dict[str, Any]:
        """Sampling parameters sent with every completion request."""
        params: dict[str, Any] = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        params.update(self.parameters)
        return params

    def __repr__(self) -> str:
        key = "***" if self.api_key else None
        return (
            f"ProviderConfig(api_type={self.api_type!r}, url={self.url!r}, "
            f"model={self.model!r}, api_key={key!r}, max_tokens={self.max_tokens}, "
            f"temperature={self.temperature}, stream={self.stream})"
        )


class ChatTransport(Protocol):
    """Small interface for "messages -> one completion" calls."""

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        parameters: Mapping[str, Any],
        stream: bool = False,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> ChatResult:
        raise NotImplementedError
