from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import openai
import requests

from llmhelper import logger as logger_mod

from .errors import LLMTransportError

log = logger_mod.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry/backoff settings for chat transport calls.

    Notes:
    - `max_retries` is the total number of attempts, including the first.
    - Values are clamped rather than rejected to keep the helper low-friction.
    """

    max_retries: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            object.__setattr__(self, "max_retries", 1)

        if self.base_delay_s <= 0:
            object.__setattr__(self, "base_delay_s", 0.1)

        if self.max_delay_s <= 0:
            object.__setattr__(self, "max_delay_s", 0.1)

        if self.max_delay_s < self.base_delay_s:
            object.__setattr__(self, "max_delay_s", float(self.base_delay_s))


NO_RETRY = RetryConfig(max_retries=1)

_TRANSIENT_CAUSES = (
    TimeoutError,
    ConnectionError,
    requests.Timeout,
    requests.ConnectionError,
    openai.APITimeoutError,
    openai.APIConnectionError,
)


def is_retryable_status(status: Optional[int]) -> bool:
    """Return True for statuses that are likely transient (408, 429, 5xx)."""

    if not isinstance(status, int):
        return False
    if 500 <= status <= 599:
        return True
    return status in (408, 429)


def is_retryable_error(error: Exception) -> bool:
    """Return True when a transport exception is likely transient."""

    if isinstance(error, LLMTransportError):
        if error.status_code is None:
            # No response at all: connection refused, reset, timed out.
            return isinstance(error.__cause__, _TRANSIENT_CAUSES)
        return is_retryable_status(error.status_code)

    return isinstance(error, _TRANSIENT_CAUSES)


def _sleep_with_backoff(
    *, delay_s: float, max_delay_s: float, attempt: int, context: str
) -> None:
    # exponential backoff with jitter (0.7x–1.3x)
    wait = min(max_delay_s, delay_s) * (0.7 + random.random() * 0.6)
    log.warning(
        f"⚠️ Retryable error while {context}; retrying in {wait:.1f}s "
        f"(attempt {attempt})"
    )
    time.sleep(wait)


def execute_with_retry(
    fn: Callable[[], T],
    *,
    context: str,
    retry: RetryConfig | None = None,
) -> T:
    """Execute a transport call with consistent retry/backoff."""

    retry = retry or RetryConfig()
    delay = retry.base_delay_s

    for attempt in range(1, retry.max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if (not is_retryable_error(e)) or attempt == retry.max_retries:
                log.debug(
                    f"❌ Error while {context} "
                    f"(attempt {attempt}/{retry.max_retries}): {e}"
                )
                raise

            _sleep_with_backoff(
                delay_s=delay,
                max_delay_s=retry.max_delay_s,
                attempt=attempt,
                context=context,
            )
            delay *= 2

    raise RuntimeError(f"Unknown error while {context}")
