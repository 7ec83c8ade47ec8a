from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from rich.progress import Progress

from llmhelper import config
from llmhelper import logger as logger_mod
from llmhelper.llm.errors import OllamaError

log = logger_mod.get_logger()

ProgressCallback = Callable[[str, int, int], None]


@dataclass(frozen=True)
class OllamaModel:
    name: str
    modified_at: Optional[str] = None
    size: Optional[int] = None
    format: Optional[str] = None
    family: Optional[str] = None
    parameter_size: Optional[str] = None
    quantization_level: Optional[str] = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "OllamaModel":
        details = item.get("details") or {}
        return cls(
            name=item.get("name") or item.get("model") or "",
            modified_at=item.get("modified_at"),
            size=item.get("size"),
            format=details.get("format"),
            family=details.get("family"),
            parameter_size=details.get("parameter_size"),
            quantization_level=details.get("quantization_level"),
        )


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.text or f"HTTP {resp.status_code}"


class _RichDownloadProgress:
    """Default progress reporter: one rich progress bar per download."""

    def __init__(self, model: str):
        self._model = model
        self._progress: Optional[Progress] = None
        self._task = None

    def __enter__(self) -> "_RichDownloadProgress":
        self._progress = Progress()
        self._progress.start()
        self._task = self._progress.add_task(f"Pulling {self._model}", total=None)
        return self

    def __call__(self, status: str, completed: int, total: int) -> None:
        assert self._progress is not None
        self._progress.update(
            self._task, completed=completed, total=total, description=status
        )

    def __exit__(self, *exc) -> None:
        if self._progress is not None:
            self._progress.stop()


class OllamaModelManager:
    """Single entry point for model management on a local Ollama server.

    Example:

        ollama = OllamaModelManager()
        for m in ollama.list_models():
            print(m.name, m.parameter_size)
    """

    def __init__(self, server: str = config.OLLAMA_SERVER, timeout_s: float = 30.0):
        self.server = server.rstrip("/")
        self.timeout_s = timeout_s

    def _url(self, path: str) -> str:
        return f"{self.server}{path}"

    def list_models(self) -> list[OllamaModel]:
        resp = requests.get(self._url("/api/tags"), timeout=self.timeout_s)
        if resp.status_code >= 400:
            raise OllamaError(_error_message(resp))
        models = (resp.json() or {}).get("models") or []
        return [OllamaModel.from_api(m) for m in models]

    def download_model(
        self, model: str, on_progress: Optional[ProgressCallback] = None
    ) -> None:
        """Pull `model`, reporting progress as ``(status, completed, total)``."""

        if on_progress is None:
            with _RichDownloadProgress(model) as bar:
                self._pull(model, bar)
        else:
            self._pull(model, on_progress)
        log.info(f"✅ Model {model} downloaded")

    def _pull(self, model: str, on_progress: ProgressCallback) -> None:
        with requests.post(
            self._url("/api/pull"),
            json={"name": model},
            stream=True,
            timeout=self.timeout_s,
        ) as resp:
            if resp.status_code >= 400:
                raise OllamaError(_error_message(resp))

            for line in resp.iter_lines(decode_unicode=True):
                line = (line or "").strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except ValueError:
                    log.debug(f"Skipping malformed progress line: {line[:120]!r}")
                    continue
                if not isinstance(record, dict):
                    continue
                if record.get("error"):
                    raise OllamaError(str(record["error"]))

                status = str(record.get("status") or "")
                total = record.get("total")
                completed = record.get("completed")
                if (
                    "pulling" in status
                    and isinstance(total, int)
                    and isinstance(completed, int)
                    and total > 0
                    and completed >= 0
                ):
                    on_progress(status, completed, total)

    def delete_model(self, model: str) -> list[OllamaModel]:
        """Delete `model` and return the refreshed model list."""

        resp = requests.delete(
            self._url("/api/delete"), json={"name": model}, timeout=self.timeout_s
        )
        if resp.status_code >= 400:
            raise OllamaError(_error_message(resp))
        log.info(f"✅ Model {model} has been deleted")
        return self.list_models()


def ollama_list_models(server: str = config.OLLAMA_SERVER) -> list[OllamaModel]:
    return OllamaModelManager(server).list_models()


def ollama_download_model(
    model: str,
    server: str = config.OLLAMA_SERVER,
    on_progress: Optional[ProgressCallback] = None,
) -> None:
    OllamaModelManager(server).download_model(model, on_progress=on_progress)


def ollama_delete_model(model: str, server: str = config.OLLAMA_SERVER) -> list[OllamaModel]:
    return OllamaModelManager(server).delete_model(model)
