import time

from fastapi.testclient import TestClient

from reqlog.config import get_settings
from reqlog.main import app


def _completed(captured) -> list[dict]:
    return [e for e in captured if e["event"] == "completed"]


async def test_health(api_client) -> None:
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers.get("x-request-id")


async def test_articles_list_collects_fields_from_dependencies(api_client, captured) -> None:
    resp = await api_client.get("/articles/")
    assert resp.status_code == 200
    assert resp.text == "list"

    completed = _completed(captured)
    assert len(completed) == 1
    line = completed[0]
    assert line["article"] == 123
    assert line["paginate"] is True
    assert line["count"] == 1
    assert line["req_id"] == resp.headers["x-request-id"]
    assert line["status"] == 200

    warnings = [e["event"] for e in captured if e["log_level"] == "warning"]
    assert warnings == ["inside article_ctx dependency", "inside paginate_ctx dependency"]


async def test_search_has_article_but_not_paginate(api_client, captured) -> None:
    resp = await api_client.get("/articles/search")
    assert resp.text == "search"

    line = _completed(captured)[0]
    assert line["article"] == 123
    assert "paginate" not in line


async def test_counter_increments_per_request(api_client, captured) -> None:
    await api_client.get("/")
    await api_client.get("/health")
    await api_client.get("/stdlog")

    assert [e["count"] for e in _completed(captured)] == [1, 2, 3]


async def test_panic_route_returns_500_and_server_keeps_serving(api_client, captured) -> None:
    resp = await api_client.get("/panic")
    assert resp.status_code == 500
    assert resp.text == "Internal Server Error"

    again = await api_client.get("/")
    assert again.status_code == 200
    assert again.text == "index"

    completed = _completed(captured)
    assert completed[0]["log_level"] == "critical"
    assert completed[0]["panic"] == "boom"
    assert completed[0]["stack"]
    assert completed[1]["log_level"] == "info"


def test_lifespan_runs_ticker_with_fallback_logger(monkeypatch, captured) -> None:
    monkeypatch.setenv("TICK_INTERVAL_SECONDS", "0.01")
    get_settings.cache_clear()

    with TestClient(app):
        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline and not any(e["event"] == "tick" for e in captured):
            time.sleep(0.01)

    ticks = [e for e in captured if e["event"] == "tick"]
    assert ticks
    assert "uri" not in ticks[0]
