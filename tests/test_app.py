import logging

import pytest

from ridehail.core.logging_config import RequestIdFilter, request_id_var
from ridehail.services.best_effort import run_best_effort


async def test_healthcheck(client):
    response = await client.get("/healthcheck")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("path", ["/api/v1/rides/request", "/api/v1/users/register", "/anything"])
async def test_options_preflight(client, path):
    response = await client.options(path, headers={"Origin": "http://example.com"})

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


async def test_request_id_is_echoed(client):
    response = await client.get("/healthcheck", headers={"X-Request-ID": "req-1"})

    assert response.headers["X-Request-ID"] == "req-1"


async def test_request_id_is_generated(client):
    response = await client.get("/healthcheck")

    assert response.headers["X-Request-ID"]


def test_request_id_filter_sets_attribute():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("abc")
    try:
        assert RequestIdFilter().filter(record) is True
    finally:
        request_id_var.reset(token)

    assert record.request_id == "abc"


async def test_best_effort_swallows_and_logs(caplog):
    async def fail():
        raise RuntimeError("boom")

    with caplog.at_level(logging.WARNING, logger="ridehail.services.best_effort"):
        await run_best_effort("audit", fail)

    assert "audit" in caplog.text
    assert "boom" in caplog.text


async def test_best_effort_passes_arguments():
    calls = []

    async def record(*args, **kwargs):
        calls.append((args, kwargs))

    await run_best_effort("record", record, 1, key="value")

    assert calls == [((1,), {"key": "value"})]
