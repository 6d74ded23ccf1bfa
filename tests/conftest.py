"""Shared test fixtures and configuration for the Tutor companion test suite.

This module provides reusable fixtures for common test scenarios including:
- NowParts construction for rule and schedule tests
- Raw content/events payload factories
- httpx mock transports for loader tests
- Source configuration objects
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from unittest.mock import Mock

import httpx
import pytest

from tutor.companion.cache import PayloadCache
from tutor.companion.config import PayloadSourceConfig
from tutor.datetime_utils import NowParts

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns a Mock with spec=logging.Logger to ensure only valid
    logger methods can be called.
    """
    return Mock(spec=logging.Logger)


# ============================================================================
# Clock Fixtures
# ============================================================================


def make_now(
    *,
    dow3: str = "MON",
    date_local: str = "2026-01-05",
    minutes: int = 9 * 60 + 30,
    dow_long: str = "Monday",
) -> NowParts:
    return NowParts(
        timezone="America/New_York",
        dow_long=dow_long,
        dow3=dow3,
        date_local=date_local,
        minutes=minutes,
    )


@pytest.fixture
def monday_morning() -> NowParts:
    """Monday 2026-01-05 at 09:30 local."""
    return make_now()


# ============================================================================
# Payload Fixtures
# ============================================================================


def content_raw(**overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "meta": {"version": 3},
        "homePageId": "home",
        "pages": {
            "home": {
                "type": "tiles",
                "title": "Home",
                "tiles": [
                    {"label": "Today", "to": "schedule_today"},
                    {"label": "Call family", "to": "call"},
                ],
            },
            "schedule_today": {
                "type": "schedule",
                "title": "Today",
                "sections": [
                    {"heading": "Morning", "lines": [{"label": "Breakfast", "time": "8 AM"}]},
                    {"heading": "Midday", "lines": [{"label": "Lunch", "time": "12 PM"}]},
                    {"heading": "Evening", "lines": ["Supper"]},
                ],
            },
            "call": {"type": "say", "title": "Call", "text": "Calling now."},
        },
    }
    raw.update(overrides)
    return raw


def events_raw(rules: list[dict[str, Any]] | None = None, events: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {"meta": {"source": "test"}, "rules": rules or [], "events": events or []}


def event_entry(
    entry_id: str,
    *,
    schedule: dict[str, Any] | None = None,
    priority: Any = None,
    enabled: Any = True,
    **extra: Any,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": entry_id,
        "enabled": enabled,
        "schedule": schedule
        if schedule is not None
        else {"type": "weekly", "dow": "MON", "startLocal": "09:00", "endLocal": "10:00"},
    }
    if priority is not None:
        entry["priority"] = priority
    entry.update(extra)
    return entry


# ============================================================================
# Loader Fixtures
# ============================================================================


@pytest.fixture
def cache(tmp_path) -> PayloadCache:
    return PayloadCache(tmp_path / "cache")


@pytest.fixture
def source_config(tmp_path) -> Callable[..., PayloadSourceConfig]:
    """Factory for PayloadSourceConfig rooted in the test's tmp_path."""

    def _create(**overrides: Any) -> PayloadSourceConfig:
        values: dict[str, Any] = {
            "remote_url": "https://content.example.com/content.json",
            "local_path": str(tmp_path / "missing.json"),
            "cache_key": "tutor.test.lastKnownGood",
        }
        values.update(overrides)
        return PayloadSourceConfig(**values)

    return _create


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def json_transport() -> Callable[[dict[str, Any]], RecordingTransport]:
    """Factory for a transport serving fixed responses keyed by URL path.

    Values may be an ``httpx.Response``, a request handler, an exception
    instance to raise, or a JSON-compatible object served with status 200.
    """

    def _create(routes: dict[str, Any]) -> RecordingTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            result = routes.get(request.url.path)
            if result is None:
                return httpx.Response(404)
            if isinstance(result, Exception):
                raise result
            if callable(result):
                return result(request)
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json=result)

        return RecordingTransport(handler)

    return _create
