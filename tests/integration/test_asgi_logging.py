import asyncio

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from httplog import HttpLogger
from httplog.http.middleware import RequestLoggingMiddleware, setup_http_logging


def make_app():
    app = FastAPI()

    @app.get("/hello")
    async def hello(request: Request):
        request.state.log.info("handling", step="hello")
        return {"hello": "world", "loggers": len(request.state.all_logs)}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/missing")
    async def missing():
        raise HTTPException(status_code=404, detail="nope")

    @app.get("/unavailable")
    async def unavailable():
        return PlainTextResponse("down", status_code=503)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


def terminal(records):
    return [r for r in records if "responseTime" in r]


def test_request_is_logged(capture):
    app = make_app()
    setup_http_logging(app, stream=capture)
    client = TestClient(app)

    resp = client.get("/hello?name=x", headers={"X-Trace": "t1"})
    assert resp.status_code == 200

    handling, done = capture.records()
    assert handling["msg"] == "handling"
    assert handling["step"] == "hello"
    assert handling["req"]["url"] == "/hello?name=x"
    assert done["msg"] == "request completed"
    assert done["req"]["method"] == "GET"
    assert done["req"]["headers"]["x-trace"] == "t1"
    assert done["res"]["status_code"] == 200
    assert done["res"]["headers"]["content-type"] == "application/json"


def test_unhandled_exception_is_logged_as_error(capture):
    app = make_app()
    setup_http_logging(app, stream=capture)
    client = TestClient(app, raise_server_exceptions=False)

    assert client.get("/boom").status_code == 500

    [record] = terminal(capture.records())
    assert record["msg"] == "request errored"
    assert record["err"]["type"] == "RuntimeError"
    assert record["err"]["message"] == "kaboom"
    assert record["res"]["status_code"] == 500


def test_exception_reaches_host(capture):
    app = make_app()
    setup_http_logging(app, stream=capture)
    with pytest.raises(RuntimeError):
        TestClient(app).get("/boom")
    assert len(terminal(capture.records())) == 1


def test_http_exception_is_a_completed_request(capture):
    app = make_app()
    setup_http_logging(app, stream=capture)
    assert TestClient(app).get("/missing").status_code == 404

    [record] = terminal(capture.records())
    assert record["msg"] == "request completed"
    assert record["res"]["status_code"] == 404


def test_5xx_response_gets_status_error(capture):
    app = make_app()
    setup_http_logging(app, stream=capture)
    assert TestClient(app).get("/unavailable").status_code == 503

    [record] = terminal(capture.records())
    assert record["msg"] == "request errored"
    assert record["err"]["message"] == "failed with status code 503"


def test_ignored_paths_are_not_logged(capture):
    app = make_app()
    setup_http_logging(app, stream=capture, auto_logging={"ignore_paths": ["/health"]})
    client = TestClient(app)
    client.get("/health")
    client.get("/hello")
    urls = [r["req"]["url"] for r in terminal(capture.records())]
    assert urls == ["/hello"]


def test_request_id_from_header(capture):
    app = make_app()
    setup_http_logging(
        app,
        stream=capture,
        gen_req_id=lambda req, res: req.headers.get("x-request-id"),
    )
    client = TestClient(app)
    client.get("/hello", headers={"X-Request-Id": "abc-1"})
    client.get("/hello")

    ids = [r["req"]["id"] for r in terminal(capture.records())]
    assert ids == ["abc-1", 1]


def test_stacked_middlewares_share_one_exchange(capture):
    app = make_app()
    inner = HttpLogger(capture, custom_props={"layer": "inner"})
    outer = HttpLogger(capture, custom_props={"layer": "outer"})
    app.add_middleware(RequestLoggingMiddleware, http_logger=inner)
    app.add_middleware(RequestLoggingMiddleware, http_logger=outer)
    assert inner.logger is not outer.logger

    resp = TestClient(app).get("/hello")
    assert resp.json()["loggers"] == 2

    records = capture.records()
    # the first attached logger (outermost) is the one exposed to handlers
    assert records[0]["layer"] == "outer"
    assert sorted(r["layer"] for r in terminal(records)) == ["inner", "outer"]
    assert {r["req"]["id"] for r in terminal(records)} == {1}


def test_setup_returns_logger(capture):
    app = make_app()
    http_logger = HttpLogger(capture, quiet_req_logger=True)
    assert setup_http_logging(app, http_logger=http_logger) is http_logger

    TestClient(app).get("/hello")
    handling = capture.records()[0]
    assert handling["reqId"] == 1
    assert "req" not in handling


def test_client_disconnect_is_logged_as_aborted(capture):
    sent = []

    async def app(scope, receive, send):
        message = await receive()
        assert message["type"] == "http.disconnect"

    async def receive():
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/slow",
        "raw_path": b"/slow",
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 5000),
    }
    middleware = RequestLoggingMiddleware(app, http_logger=HttpLogger(capture))
    asyncio.run(middleware(scope, receive, send))

    assert sent == []
    [record] = capture.records()
    assert record["msg"] == "request aborted"
    assert record["res"]["status_code"] == 408
    assert record["req"]["url"] == "/slow"
    assert "err" not in record
