"""Pytest configuration file for test suite setup.

This module ensures the project root is on sys.path and provides a stub
provider server built on ``httpx.MockTransport`` so strategy tests run fully
offline.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest


def ensure_project_root_on_path() -> None:
    """Add the project root directory to sys.path if not already present."""
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


def pytest_sessionstart(session):  # type: ignore[override]
    """Pytest hook called at the start of the test session.

    Ensures the project root is on sys.path before tests run.
    """
    ensure_project_root_on_path()


class StubServer:
    """Records every request and answers with a configurable handler."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})

    def reply_json(self, payload: Any, status_code: int = 200) -> None:
        content = json.dumps(payload).encode("utf-8")
        self.responder = lambda request: httpx.Response(
            status_code, content=content, headers={"Content-Type": "application/json"}
        )

    def reply_text(self, body: str, status_code: int = 200) -> None:
        self.responder = lambda request: httpx.Response(status_code, text=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture()
def stub_server() -> StubServer:
    return StubServer()


@pytest.fixture()
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record retry delays instead of sleeping."""

    delays: List[float] = []

    async def fake_asleep(duration: float) -> None:
        delays.append(duration)

    monkeypatch.setattr("llm_strategy.transport._sleep", delays.append)
    monkeypatch.setattr("llm_strategy.transport._asleep", fake_asleep)
    return delays
