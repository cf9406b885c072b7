import json
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest
import requests

# keep test runs from writing into ./logs
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "finchat-relay-test-logs"))

from config import Settings, get_settings  # noqa: E402
from app.services import llm_providers  # noqa: E402


def make_settings(**overrides) -> Settings:
    values = {
        "LLM_PROVIDER": "gemini",
        "GEMINI_API_KEY": "gemini-test-key",
        "GROQ_API_KEY": "groq-test-key",
        "OPENAI_API_KEY": "openai-test-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_requests_response(status: int, body=None, text: str | None = None,
                           content_type: str = "application/json") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    resp.headers["Content-Type"] = content_type
    raw = text if text is not None else json.dumps(body)
    resp._content = raw.encode("utf-8")
    return resp


class FakeRequestsPost:
    """Stands in for requests.post; records calls and replays a response or raises."""

    def __init__(self, outcome=None):
        self.outcome = outcome
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


class FakeOpenAIClient:
    """Mimics ``client.chat.completions.with_raw_response.create``."""

    def __init__(self, outcome=None):
        self.outcome = outcome
        self.calls = []
        raw = SimpleNamespace(create=self._create)
        self.chat = SimpleNamespace(completions=SimpleNamespace(with_raw_response=raw))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return SimpleNamespace(http_response=self.outcome)


OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def httpx_json(status: int, body) -> httpx.Response:
    return httpx.Response(status, json=body, request=OPENAI_REQUEST)


def gemini_success(text="Xin chào!", usage=True, finish="STOP"):
    body = {
        "candidates": [{
            "content": {"role": "model", "parts": [{"text": text}]},
            "finishReason": finish,
        }],
    }
    if usage:
        body["usageMetadata"] = {"promptTokenCount": 12, "candidatesTokenCount": 5, "totalTokenCount": 17}
    return body


def chat_completion_success(text="Hello there", finish="stop"):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": finish}],
        "usage": {"prompt_tokens": 9, "completion_tokens": 3, "total_tokens": 12},
    }


@pytest.fixture
def fake_post(monkeypatch):
    fake = FakeRequestsPost()
    monkeypatch.setattr(llm_providers.requests, "post", fake)
    return fake


@pytest.fixture
def fake_openai(monkeypatch):
    fake = FakeOpenAIClient()
    monkeypatch.setattr(llm_providers.OpenAICompatibleProvider, "_client", lambda self: fake)
    return fake


@pytest.fixture
def api():
    """TestClient factory: api(**settings_overrides) -> client bound to those settings."""
    from fastapi.testclient import TestClient
    from main import app

    def _make(**overrides):
        cfg = make_settings(**overrides)
        app.dependency_overrides[get_settings] = lambda: cfg
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
