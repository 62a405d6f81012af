from __future__ import annotations

import json
import logging

from gatehouse.core.logger import JSONFormatter, RequestIdFilter, ensure_request_id


def _record(msg: str = "hello %s", *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "gatehouse.test", logging.INFO, __file__, 1, msg, args or ("x",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_single_line_json():
    record = _record(token_id="abc", reaped=3, unrelated="dropped")
    RequestIdFilter().filter(record)

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hello x"
    assert payload["level"] == "INFO"
    assert payload["name"] == "gatehouse.test"
    assert payload["request_id"] is None
    assert payload["token_id"] == "abc"
    assert payload["reaped"] == 3
    assert "unrelated" not in payload


def test_request_id_is_taken_from_header(app, app_ctx):
    with app.test_request_context(headers={"X-Correlation-ID": "corr-1"}):
        assert ensure_request_id() == "corr-1"
        record = _record()
        RequestIdFilter().filter(record)
        assert record.request_id == "corr-1"


def test_request_id_is_stable_within_a_request(app):
    with app.test_request_context():
        first = ensure_request_id()
        assert ensure_request_id() == first


def test_response_echoes_request_id(client, app_ctx):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "req-42"})

    assert resp.headers["X-Request-ID"] == "req-42"


def test_each_request_adopts_its_own_header(app, app_ctx):
    with app.test_request_context(headers={"X-Request-ID": "first"}):
        assert ensure_request_id() == "first"

    with app.app_context(), app.test_request_context(headers={"X-Request-ID": "second"}):
        assert ensure_request_id() == "second"


def test_response_gets_generated_request_id(client):
    resp = client.get("/api/v1/health")

    assert resp.headers["X-Request-ID"]


def test_malformed_inbound_request_id_is_replaced(app, app_ctx):
    with app.test_request_context(headers={"X-Request-ID": "bad id\" injected"}):
        request_id = ensure_request_id()

    assert request_id != 'bad id" injected'
    assert len(request_id) == 36


def test_formatter_names_the_thread():
    payload = json.loads(JSONFormatter().format(_record()))

    assert payload["thread"] == "MainThread"
