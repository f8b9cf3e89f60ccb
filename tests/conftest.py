"""Pytest configuration and shared fixtures."""

from collections.abc import Callable

import httpx
import pytest

from whalebone_mcp.settings import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "whalebone_base_url": "https://api.test/whalebone/2",
        "whalebone_access_key": "access-123",
        "whalebone_secret_key": "secret-456",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def json_transport(payload, status_code: int = 200) -> RecordingTransport:
    return RecordingTransport(lambda request: httpx.Response(status_code, json=payload))


@pytest.fixture
def settings() -> Settings:
    return make_settings()
