"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any module imports ``settings`` so the
suite never loads a developer's .env file and always starts in local mode.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.pop("UPSTASH_REDIS_REST_URL", None)
os.environ.pop("UPSTASH_REDIS_REST_TOKEN", None)
os.environ.pop("RATE_LIMIT_REMOTE_URL", None)
os.environ.pop("RATE_LIMIT_REMOTE_TOKEN", None)
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

from typing import Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402


class FakeClock:
    """Deterministic clock used to test window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeUpstash:
    """In-process stand-in for the Upstash REST API (INCR/EXPIRE/TTL only)."""

    def __init__(self, token: str = "test-token") -> None:
        self.token = token
        self.counts: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "Unauthorized"})

        parts = request.url.path.strip("/").split("/")
        command, key = parts[0], parts[1]

        if command == "incr":
            self.counts[key] = self.counts.get(key, 0) + 1
            return httpx.Response(200, json={"result": self.counts[key]})
        if command == "expire":
            self.ttls[key] = int(parts[2])
            return httpx.Response(200, json={"result": 1})
        if command == "ttl":
            if key not in self.counts:
                return httpx.Response(200, json={"result": -2})
            return httpx.Response(200, json={"result": self.ttls.get(key, -1)})
        return httpx.Response(400, json={"error": f"unknown command {command}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_upstash() -> FakeUpstash:
    return FakeUpstash()


@pytest.fixture
def failing_transport() -> Callable[[], httpx.MockTransport]:
    """Transport whose every request fails at the network level."""

    def _build() -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        return httpx.MockTransport(handler)

    return _build
