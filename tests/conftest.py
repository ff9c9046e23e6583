"""Shared fixtures and test doubles.

- ``OpenAIStub`` mirrors the ``openai.OpenAI`` shape used by the extraction
  adapter (``client.responses.create(**kwargs)`` returning ``output_text``).
- ``FakeSession`` stands in for ``requests.Session`` in the sheet client and
  records every POST/GET.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

import pytest
import requests

from fintrack.data.store import LocalStore
from fintrack.domain.models import Transaction

_NO_JSON = object()


class OpenAIStub:
    def __init__(self, output_text: str | None = None, error: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        outer = self

        class _Responses:
            def create(self, **kwargs):
                outer.calls.append(kwargs)
                if error is not None:
                    raise error

                class _Resp:
                    pass

                resp = _Resp()
                resp.output_text = output_text
                return resp

        self.responses = _Responses()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = _NO_JSON) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is _NO_JSON:
            raise ValueError("not json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(
        self,
        get_response: FakeResponse | None = None,
        post_status: int = 200,
        error: Exception | None = None,
    ) -> None:
        self.posts: list[dict[str, Any]] = []
        self.gets: list[str] = []
        self.get_response = get_response or FakeResponse(payload=[])
        self.post_status = post_status
        self.error = error

    def post(self, url, data=None, headers=None, **kwargs):
        self.posts.append({"url": url, "data": data, "headers": headers or {}})
        if self.error is not None:
            raise self.error
        return FakeResponse(status_code=self.post_status)

    def get(self, url, **kwargs):
        self.gets.append(url)
        if self.error is not None:
            raise self.error
        return self.get_response

    def posted_json(self, i: int = -1):
        return json.loads(self.posts[i]["data"])


@pytest.fixture
def openai_stub():
    return OpenAIStub


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def store(tmp_path: Path) -> Iterator[LocalStore]:
    s = LocalStore(tmp_path / "fintrack.db")
    yield s
    s.close()


@pytest.fixture
def make_tx():
    def _make(**overrides) -> Transaction:
        fields = {
            "date": "2024-01-05",
            "bank_name": "HDFC Bank",
            "description": "Grocery store",
            "amount": 100.0,
            "direction": "Spent",
            "type": "Personal",
            "tag": "Food",
        }
        fields.update(overrides)
        return Transaction(**fields)

    return _make
