"""Shared fixtures: a Client wired to an in-process httpx.MockTransport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from volc_speech.client import Client
from volc_speech.config import ClientConfig

BASE_URL = "https://speech.test"
ACCESS_TOKEN = "test-access-token"

CONTRACTS_DIR = Path(__file__).resolve().parents[1] / "contracts"


def load_schema(name: str) -> dict:
    return json.loads((CONTRACTS_DIR / name).read_text(encoding="utf-8"))


class FakeService:
    """Replays queued responses in order and records every request it receives."""

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], Client]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> Client:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Client(ClientConfig(access_token=ACCESS_TOKEN, base_url=BASE_URL), http_client=http)

    return _make
