"""
Pytest configuration for the gateway tests.

Every test starts from a clean configuration: gateway env vars are removed, the
config cache is dropped and log files go to a temporary directory.
"""

import pytest

from aigateway.config import reset_config_cache

GATEWAY_ENV_PREFIXES = ("OLLAMA_", "AI_", "IMAGE_", "ATTACHMENT_", "MAX_ATTACHMENT", "TENOR_", "GIF_", "LOG_")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    import os

    for key in list(os.environ):
        if key.startswith(GATEWAY_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOG_JSONL_PATH", str(tmp_path / "logs" / "gateway.jsonl"))
    reset_config_cache()
    yield
    reset_config_cache()


class FakeOllamaClient:
    """In-memory stand-in for OllamaClient."""

    def __init__(self, models=None, reply="Hello from the model", list_error=None, chat_error=None):
        self.models = models if models is not None else ["phi3:latest"]
        self.reply = reply
        self.list_error = list_error
        self.chat_error = chat_error
        self.list_calls = 0
        self.chat_payloads = []
        self.closed = False

    async def list_models(self, timeout=2.0):
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.models)

    async def chat(self, payload, timeout=300.0):
        self.chat_payloads.append(payload)
        if self.chat_error is not None:
            raise self.chat_error
        if isinstance(self.reply, dict):
            return self.reply
        return {"message": {"role": "assistant", "content": self.reply}, "done": True}

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeOllamaClient()


@pytest.fixture
def make_client():
    return FakeOllamaClient
