"""
Pytest configuration and fixtures for the test suite.

Every test starts in fallback mode (no upstream credential). Tests that need
the completion service install a fake one with the ``upstream`` fixture,
which routes the relay's HTTP client through ``httpx.MockTransport``.
"""

import httpx
import pytest

from chatify import config, upstream as upstream_module


@pytest.fixture(autouse=True)
def no_credential(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")


class FakeUpstream:
    """Records requests and answers with a configurable response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.json_body = None
        self.text_body = ""
        self.error: Exception | None = None

    def reply_with(self, content: str) -> None:
        self.status_code = 200
        self.json_body = {"choices": [{"message": {"role": "assistant", "content": content}}]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.json_body is not None:
            return httpx.Response(self.status_code, json=self.json_body)
        return httpx.Response(self.status_code, text=self.text_body)


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(
        upstream_module,
        "_make_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)),
    )
    return fake
