from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests

from llmhelper import config as app_config
from llmhelper import logger as logger_mod

from . import probe as probe_mod
from .base import ProviderConfig

log = logger_mod.get_logger()


@dataclass(frozen=True)
class DiagnosisReport:
    results: dict[str, bool] = field(default_factory=dict)
    recommendation: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.results) and all(self.results.values())


def _check_connectivity(base_url: str) -> bool:
    host = urlparse(base_url).netloc
    try:
        resp = requests.get(f"https://{host}", timeout=app_config.DIAGNOSE_TIMEOUT_S)
    except requests.RequestException as e:
        log.error(f"❌ Network connectivity failed: {e}")
        return False
    log.info(f"✅ Network connectivity OK, status: {resp.status_code}")
    return True


def _check_endpoint(base_url: str) -> bool:
    try:
        resp = requests.get(base_url, timeout=app_config.DIAGNOSE_TIMEOUT_S)
    except requests.RequestException as e:
        log.error(f"❌ API endpoint not accessible: {e}")
        return False
    if resp.status_code == 405:
        # GET on a POST-only endpoint
        log.info("✅ API endpoint accessible (405 Method Not Allowed is expected)")
    else:
        log.info(f"ℹ️ API endpoint returned status: {resp.status_code}")
    return True


def _recommendation(results: dict[str, bool]) -> str:
    core = [results["connectivity"], results["endpoint"], results["auth"]]
    if all(core):
        if results.get("compatibility", True):
            return "All tests passed! Your connection should work perfectly."
        return (
            "The API works but the conversation layer failed. Recommended: "
            "llm_provider(..., skip_test=True)"
        )

    problems = []
    if not results["connectivity"]:
        problems.append("network connectivity problems")
    if not results["endpoint"]:
        problems.append("API endpoint not accessible")
    if not results["auth"]:
        problems.append("authentication or model issues")
    return (
        "Some tests failed: "
        + "; ".join(problems)
        + ". Check your network, API key, and model name."
    )


def diagnose_llm_connection(
    base_url: str,
    api_key: str,
    model: str,
    test_compatibility: bool = True,
) -> DiagnosisReport:
    """Run independent connectivity, endpoint, auth and compatibility checks."""

    key_preview = f"{api_key[:8]}..." if api_key else "<none>"
    log.info(f"ℹ️ Diagnosing {base_url} (model={model}, key={key_preview})")

    results: dict[str, bool] = {}
    results["connectivity"] = _check_connectivity(base_url)
    results["endpoint"] = _check_endpoint(base_url)

    cfg = ProviderConfig(
        api_type="openai", url=base_url, model=model, api_key=api_key, verbose=True
    )
    results["auth"] = probe_mod.probe_http(cfg).success

    if test_compatibility:
        small = ProviderConfig(
            api_type="openai",
            url=base_url,
            model=model,
            api_key=api_key,
            temperature=0.1,
            max_tokens=5,
            verbose=True,
        )
        results["compatibility"] = probe_mod.probe_full(small).success

    recommendation = _recommendation(results)
    if all(results.values()):
        log.info(f"✅ {recommendation}")
    else:
        log.warning(f"⚠️ {recommendation}")
    return DiagnosisReport(results=results, recommendation=recommendation)
