"""Shared pytest fixtures for the HTML i18n extractor."""

from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from src import config
from src import i18n
from src.web.app import build_app


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point configuration at an empty temp dir and drop any real API keys."""
    monkeypatch.setattr(config, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "config.json")
    for env_name in list(config.ENV_API_KEYS.values()) + [config.ENV_LOG_MODE]:
        monkeypatch.delenv(env_name, raising=False)
    i18n.clear_cache()
    return tmp_path


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_transport():
    def factory(handler) -> RecordingTransport:
        return RecordingTransport(handler)
    return factory


@pytest.fixture
def failing_transport():
    """Transport that fails the test if any request is attempted."""
    def handler(request):
        pytest.fail(f"Unexpected network call to {request.url}")
    return RecordingTransport(handler)


def openai_response(content, status_code: int = 200, usage: dict = None) -> httpx.Response:
    body = {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": usage or {"prompt_tokens": 120, "completion_tokens": 40},
    }
    return httpx.Response(status_code, json=body)


def gemini_response(text, usage: dict = None) -> httpx.Response:
    body = {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}],
        "usageMetadata": usage or {"promptTokenCount": 90, "candidatesTokenCount": 30},
    }
    return httpx.Response(200, json=body)


def error_response(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(status_code, json={"error": {"message": message, "code": status_code}})


@pytest.fixture
def app():
    app = build_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
