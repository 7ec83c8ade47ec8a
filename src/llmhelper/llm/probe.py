"""Minimal test calls used to validate a provider configuration.

Every probe sends at most two requests: the first attempt and, when the
endpoint rejects the token ceiling with a parseable limit, one retry at that
limit. Failures are returned as a `ProbeOutcome`, never raised.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

import requests

from llmhelper import config as app_config
from llmhelper import logger as logger_mod

from . import prompting
from ._retry import NO_RETRY
from .base import ProviderConfig
from .tokens import mentions_max_tokens, parse_max_tokens
from .types import ProbeOutcome, TestMode

log = logger_mod.get_logger()

PROBE_PROMPT = "Hi"

# Reply-shape failures: the endpoint works, the response handling does not.
_PARSE_FAILURE = re.compile(
    r"differing number of rows|unable to extract text|could not be parsed|"
    r"expecting value|invalid json",
    re.IGNORECASE,
)


def _probe_request(config: ProviderConfig, max_tokens: int) -> requests.Response:
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    body: dict[str, Any] = {
        "model": config.model,
        "messages": [{"role": "user", "content": PROBE_PROMPT}],
        "max_tokens": max_tokens,
        "temperature": 0,
        "stream": False,
    }
    return requests.post(
        config.url, headers=headers, json=body, timeout=app_config.PROBE_TIMEOUT_S
    )


def _body_text(resp: requests.Response) -> str:
    try:
        return resp.text or ""
    except Exception:  # noqa: BLE001
        return ""


def probe_http(
    config: ProviderConfig, *, verbose: Optional[bool] = None
) -> ProbeOutcome:
    """Probe the endpoint with one raw HTTP completion request."""

    verbose = config.verbose if verbose is None else verbose
    say = log.info if verbose else log.debug
    say("ℹ️ Testing HTTP connection...")

    try:
        resp = _probe_request(config, config.max_tokens)
    except requests.RequestException as e:
        log.warning(f"❌ HTTP request error: {e}")
        return ProbeOutcome(success=False, reason=f"transport: {e}")

    status = resp.status_code
    if 200 <= status < 300:
        say("✅ HTTP test successful")
        return ProbeOutcome(success=True)

    if status == 400:
        content = _body_text(resp)
        if mentions_max_tokens(content):
            say("ℹ️ Detected max_tokens limit error, attempting to parse...")
            limit = parse_max_tokens(content)
            if limit is not None:
                say(f"ℹ️ Detected model max_tokens limit: {limit}")
                try:
                    retry_resp = _probe_request(config, limit)
                except requests.RequestException as e:
                    log.warning(f"❌ HTTP retry error: {e}")
                    return ProbeOutcome(
                        success=False, reason=f"transport: {e}", retries=1
                    )
                if 200 <= retry_resp.status_code < 300:
                    say("✅ HTTP test successful with adjusted max_tokens")
                    return ProbeOutcome(
                        success=True, adjusted_max_tokens=limit, retries=1
                    )
                log.warning(
                    f"⚠️ HTTP retry with max_tokens={limit} returned status "
                    f"{retry_resp.status_code}"
                )
                return ProbeOutcome(
                    success=False, reason=f"http {retry_resp.status_code}", retries=1
                )

        log.warning(f"⚠️ HTTP test returned status 400: {content[:200]}")
        return ProbeOutcome(success=False, reason="http 400")

    if status == 401:
        log.error("❌ Authentication failed - check API key")
        return ProbeOutcome(success=False, reason="authentication")

    log.warning(f"⚠️ HTTP test returned status {status}: {_body_text(resp)[:200]}")
    return ProbeOutcome(success=False, reason=f"http {status}")


def _send_probe(config: ProviderConfig) -> bool:
    reply = prompting.send_prompt(
        PROBE_PROMPT,
        config,
        max_interactions=1,
        verbose=False,
        stream=False,
        retry=NO_RETRY,
    )
    return isinstance(reply, str) and bool(reply.strip())


def probe_full(
    config: ProviderConfig, *, verbose: Optional[bool] = None
) -> ProbeOutcome:
    """Probe through the same conversation path real requests take."""

    verbose = config.verbose if verbose is None else verbose
    say = log.info if verbose else log.debug
    say("ℹ️ Testing conversation-layer compatibility...")

    try:
        ok = _send_probe(config)
    except Exception as e:  # noqa: BLE001
        message = str(e)
        limit = parse_max_tokens(message) if mentions_max_tokens(message) else None
        if limit is None:
            log.warning(f"⚠️ Compatibility test failed: {message[:300]}")
            if _PARSE_FAILURE.search(message):
                log.warning(
                    "⚠️ The endpoint answered but its reply could not be parsed. "
                    "The API may still work: consider skip_test=True."
                )
            return ProbeOutcome(success=False, reason=message[:300])

        say(f"ℹ️ Detected model max_tokens limit: {limit}; retrying once")
        try:
            ok = _send_probe(config.with_max_tokens(limit))
        except Exception as e2:  # noqa: BLE001
            log.warning(f"⚠️ Compatibility test still failed after adjustment: {e2}")
            return ProbeOutcome(
                success=False,
                adjusted_max_tokens=limit,
                reason=str(e2)[:300],
                retries=1,
            )
        if ok:
            say("✅ Compatibility test passed with adjusted max_tokens")
        return ProbeOutcome(
            success=ok,
            adjusted_max_tokens=limit,
            reason=None if ok else "empty response",
            retries=1,
        )

    if ok:
        say("✅ Compatibility test passed")
        return ProbeOutcome(success=True)

    log.warning("⚠️ Compatibility test returned an empty result")
    return ProbeOutcome(success=False, reason="empty response")


def probe(
    config: ProviderConfig,
    mode: Union[str, TestMode] = TestMode.FULL,
    *,
    verbose: Optional[bool] = None,
) -> ProbeOutcome:
    mode = TestMode.coerce(mode)
    if mode is TestMode.SKIP:
        return ProbeOutcome(success=True, reason="skipped")
    if mode is TestMode.HTTP_ONLY:
        return probe_http(config, verbose=verbose)
    return probe_full(config, verbose=verbose)
