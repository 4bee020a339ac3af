"""Test configuration and fixtures for resource_keepalive"""

import threading
from typing import Callable, List, Optional

import httpx
import pytest
from dotenv import load_dotenv

from resource_keepalive.config import ResourceConfig
from resource_keepalive.connection import ConnectionFactory
from resource_keepalive.constants import TIMEOUT_ENV_VAR
from resource_keepalive.executor import RequestExecutor
from resource_keepalive.instrumentation import Notifier
from resource_keepalive.pool import ConnectionPool

# Load environment variables from .env for test runs
load_dotenv()

SITE = "http://api.example.com"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransportFactory:
    """Builds one MockTransport per connection and records every request."""

    def __init__(self, handler: Optional[Handler] = None):
        self.handler = handler or (lambda request: httpx.Response(200, json={"ok": True}))
        self.requests: List[httpx.Request] = []
        self.builds = 0
        self._lock = threading.Lock()

    def _handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        return self.handler(request)

    def __call__(self, connection) -> httpx.BaseTransport:
        self.builds += 1
        return httpx.MockTransport(self._handle)


@pytest.fixture(autouse=True)
def clear_timeout_env(monkeypatch):
    """Keep a developer's timeout setting from leaking into tests."""
    monkeypatch.delenv(TIMEOUT_ENV_VAR, raising=False)


@pytest.fixture
def transports() -> RecordingTransportFactory:
    return RecordingTransportFactory()


@pytest.fixture
def factory(transports) -> ConnectionFactory:
    return ConnectionFactory(transport_factory=transports)


@pytest.fixture
def pool() -> ConnectionPool:
    return ConnectionPool()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def make_executor(pool, factory, notifier):
    """Build executors sharing the test pool, factory and notifier."""

    def _make(**settings) -> RequestExecutor:
        settings.setdefault("site", SITE)
        return RequestExecutor(
            ResourceConfig(**settings), pool=pool, factory=factory, notifier=notifier
        )

    return _make
