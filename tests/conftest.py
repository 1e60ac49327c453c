from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
import structlog
from httpx import ASGITransport, AsyncClient
from structlog.testing import LogCapture, capture_logs

from reqlog.config import get_settings
from reqlog.main import app
from reqlog.observability.counter import reset_request_counter


def _fatal_on_critical(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # A sink whose policy for the highest level is to exit the process.
    if method_name == "critical":
        raise SystemExit(1)
    return event_dict


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("TICK_INTERVAL_SECONDS", "0")
    get_settings.cache_clear()
    reset_request_counter()
    yield
    reset_request_counter()
    get_settings.cache_clear()


@pytest.fixture
def logger() -> Any:
    return structlog.get_logger("test")


@pytest.fixture
def captured() -> Iterator[list[dict[str, Any]]]:
    with capture_logs() as events:
        yield events


@pytest.fixture
def fatal_sink() -> tuple[Any, LogCapture]:
    """A logger that raises SystemExit on critical, plus the capture behind it."""

    capture = LogCapture()
    return structlog.wrap_logger(None, processors=[_fatal_on_critical, capture]), capture


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
