from __future__ import annotations

import os
import re
from typing import Any, Callable, Optional, Union
from urllib.parse import urlparse

from llmhelper import config as app_config
from llmhelper import logger as logger_mod
from llmhelper.ollama import OllamaModelManager

from . import probe as probe_mod
from .base import ProviderConfig
from .errors import ConfigurationError, LLMError
from .types import ProbeOutcome, TestMode

log = logger_mod.get_logger()

EnvLookup = Callable[[str], Optional[str]]


def resolve_api_key(
    api_key: Optional[str],
    base_url: str,
    lookup: Optional[EnvLookup] = None,
) -> tuple[str, str]:
    """Return ``(api_key, source)`` for an endpoint.

    Order: explicit argument, the host's provider-specific variable (e.g.
    ``OPENAI_API_KEY`` for api.openai.com), then ``LLM_API_KEY``.
    """

    if api_key:
        return api_key, "argument"

    lookup = lookup or os.environ.get
    host = (urlparse(base_url).hostname or "").lower()
    candidates = []
    specific = app_config.PROVIDER_API_KEY_ENVS.get(host)
    if specific:
        candidates.append(specific)
    candidates.append(app_config.DEFAULT_API_KEY_ENV)

    for name in candidates:
        value = lookup(name)
        if value:
            return value, f"env:{name}"

    raise ConfigurationError(
        "API key not provided. Please set the api_key parameter or the "
        f"{' / '.join(candidates)} environment variable."
    )


def _validate_common(temperature: float, max_tokens: int, timeout: float) -> None:
    if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens < 1:
        raise ConfigurationError("max_tokens must be a positive integer")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError("timeout must be a positive number")
    if not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
        raise ConfigurationError("temperature must be between 0 and 2")


def create_provider(
    base: ProviderConfig,
    test_mode: Union[str, TestMode] = TestMode.FULL,
) -> ProviderConfig:
    """Probe `base` and return the configuration to use.

    A ceiling adjusted by the probe yields one rebuilt configuration. Probe
    failure is reported as a warning and on ``config.probe``; the
    configuration is returned either way.
    """

    mode = TestMode.coerce(test_mode)
    say = log.info if base.verbose else log.debug

    if mode is TestMode.SKIP:
        say(f"ℹ️ Skipping availability test for model: {base.model}")
        say(f"✅ Model provider created for {base.model}")
        return base

    outcome: ProbeOutcome = probe_mod.probe(base, mode)
    provider = base
    if outcome.adjusted_max_tokens is not None:
        provider = base.with_max_tokens(outcome.adjusted_max_tokens)
        log.warning(
            f"⚠️ max_tokens adjusted from {base.max_tokens} to "
            f"{outcome.adjusted_max_tokens} (model limit)"
        )

    if outcome.success:
        say(f"✅ Model {provider.model} is ready to use")
    else:
        log.warning(
            f"⚠️ Model {provider.model} may have compatibility issues "
            f"({outcome.reason or 'unknown'}). You can still use this provider, "
            "but consider skip_test=True for future calls."
        )

    return provider.with_probe(outcome)


def llm_provider(
    base_url: str = app_config.DEFAULT_OPENAI_URL,
    api_key: Optional[str] = None,
    model: str = app_config.DEFAULT_MODEL,
    temperature: float = 0.2,
    max_tokens: int = 5000,
    timeout: float = 100,
    stream: bool = False,
    verbose: bool = True,
    skip_test: bool = False,
    test_mode: Union[str, TestMode] = TestMode.FULL,
    env_lookup: Optional[EnvLookup] = None,
    **parameters: Any,
) -> ProviderConfig:
    """Create an OpenAI-compatible provider, probing it unless told not to.

    When the endpoint rejects `max_tokens` and reports its limit, the returned
    configuration uses that limit instead.
    """

    mode = TestMode.coerce(test_mode)
    _validate_common(temperature, max_tokens, timeout)
    key, source = resolve_api_key(api_key, base_url, env_lookup)

    base = ProviderConfig(
        api_type="openai",
        url=base_url,
        model=model,
        api_key=key,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_s=float(timeout),
        stream=stream,
        verbose=verbose,
        parameters=parameters,
        credential_source=source,
    )
    return create_provider(base, TestMode.SKIP if skip_test else mode)


def ollama_server_url(chat_url: str) -> str:
    return re.sub(r"/api/chat/?$", "", chat_url.rstrip("/"))


def llm_ollama(
    base_url: str = app_config.DEFAULT_OLLAMA_URL,
    model: str = app_config.DEFAULT_OLLAMA_MODEL,
    temperature: float = 0.2,
    max_tokens: int = 5000,
    timeout: float = 100,
    stream: bool = True,
    verbose: bool = True,
    skip_test: bool = False,
    auto_download: bool = True,
    **parameters: Any,
) -> ProviderConfig:
    """Create an Ollama provider.

    Unless `skip_test`, the model is probed; when that fails and
    `auto_download` is set, the model is pulled and probed once more.
    """

    _validate_common(temperature, max_tokens, timeout)
    say = log.info if verbose else log.debug

    provider = ProviderConfig(
        api_type="ollama",
        url=base_url,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_s=float(timeout),
        stream=stream,
        verbose=verbose,
        parameters=parameters,
    )

    if skip_test:
        return create_provider(provider, TestMode.SKIP)

    outcome = probe_mod.probe_full(provider)
    if not outcome.success and auto_download:
        say(f"🔄 Attempting to download model: {model}")
        try:
            OllamaModelManager(server=ollama_server_url(base_url)).download_model(
                model
            )
        except (LLMError, OSError) as e:
            log.error(f"❌ Failed to download model {model}: {e}")
        else:
            outcome = probe_mod.probe_full(provider)
            if outcome.success:
                say(f"✅ Model {model} downloaded and ready")

    if outcome.adjusted_max_tokens is not None:
        log.warning(
            f"⚠️ max_tokens adjusted from {provider.max_tokens} to "
            f"{outcome.adjusted_max_tokens} (model limit)"
        )
        provider = provider.with_max_tokens(outcome.adjusted_max_tokens)

    if outcome.success:
        say(f"✅ Model {model} is ready to use")
    else:
        log.warning(
            f"⚠️ Model {model} may not be available. You can still try to use this provider"
        )
    return provider.with_probe(outcome)
