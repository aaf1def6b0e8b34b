"""
Shared pytest fixtures for courier tests.

This module provides:
- A manual clock for breaker and cache timing
- ``httpx.MockTransport`` client factories
- A scripted sender that replays canned outcomes
- Settings cache isolation
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

# Ensure courier package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from courier.core.settings import clear_settings_cache
from courier.http.models import RequestUnit


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedSender:
    """Sender returning canned outcomes in order.

    Each script entry is either an ``int`` status (2xx → ``{"ok": True}``
    response, anything else → an ``"HTTP <code>"`` error entry) or an
    exception instance, which is raised.
    """

    def __init__(self, script: list[int | BaseException]):
        self.script = list(script)
        self.calls: list[RequestUnit[Any]] = []

    async def send(self, unit: RequestUnit[Any], cancellation=None) -> RequestUnit[Any]:
        unit.validate()
        self.calls.append(unit)
        outcome = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(outcome, BaseException):
            raise outcome
        unit.status_code = outcome
        if 200 <= outcome < 300:
            unit.response = {"ok": True}
        else:
            unit.record_error(f"HTTP {outcome}")
        return unit


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scripted() -> Callable[[list[int | BaseException]], ScriptedSender]:
    return ScriptedSender


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """Factory: ``mock_client(handler)`` → AsyncClient over a MockTransport."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> httpx.AsyncClient:
        kwargs.setdefault("base_url", "http://test")
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Each test sees fresh settings with no COURIER_* leakage."""
    import os

    for key in list(os.environ):
        if key.startswith("COURIER_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
