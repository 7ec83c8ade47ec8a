import pytest

from llmhelper.llm import transport
from llmhelper.llm.base import ProviderConfig
from llmhelper.llm.types import ChatResult


class DummyLogger:
    """Very small logger stub used by tests."""

    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def _log(self, level: str, msg: str):
        self.records.append((level, str(msg)))

    def info(self, msg: str):
        self._log("info", msg)

    def warning(self, msg: str):
        self._log("warning", msg)

    def error(self, msg: str):
        self._log("error", msg)

    def debug(self, msg: str):
        self._log("debug", msg)

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.records if lvl == level]


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, status_code=200, text="", payload=None, lines=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload
        self._lines = lines or []

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def iter_lines(self, decode_unicode=False):
        yield from self._lines

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class ScriptedChat:
    """Replaces `transport.chat_completion` with canned replies (or errors)."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def __call__(
        self,
        config,
        messages,
        *,
        parameters=None,
        stream=False,
        on_chunk=None,
        retry=None,
    ):
        self.calls.append(
            {
                "config": config,
                "messages": list(messages),
                "parameters": dict(parameters or {}),
                "stream": stream,
                "retry": retry,
            }
        )
        if not self.replies:
            raise AssertionError("ScriptedChat ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatResult(text=reply, raw={"call": len(self.calls)})


@pytest.fixture
def scripted_chat(monkeypatch):
    """Fixture: install scripted replies, e.g. ``chat = scripted_chat("a", "b")``."""

    def install(*replies):
        chat = ScriptedChat(replies)
        monkeypatch.setattr(transport, "chat_completion", chat)
        return chat

    return install


@pytest.fixture
def dummy_log(monkeypatch):
    """Fixture: route the `log` of every llmhelper module to one DummyLogger."""

    from llmhelper.llm import (
        _retry,
        diagnostics,
        factory,
        probe,
        prompting,
        response,
        schema,
    )
    from llmhelper.ollama import models

    logger = DummyLogger()
    for mod in (_retry, diagnostics, factory, probe, prompting, response, schema, models):
        monkeypatch.setattr(mod, "log", logger)
    return logger


@pytest.fixture
def provider():
    return ProviderConfig(
        api_type="openai",
        url="https://api.example.com/v1/chat/completions",
        model="test-model",
        api_key="sk-test",
        max_tokens=5000,
        verbose=False,
    )


@pytest.fixture
def ollama_provider():
    return ProviderConfig(
        api_type="ollama",
        url="http://localhost:11434/api/chat",
        model="qwen2.5:1.5b-instruct",
        verbose=False,
    )


@pytest.fixture
def fake_response():
    return FakeResponse
