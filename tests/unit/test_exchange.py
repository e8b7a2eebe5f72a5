from httplog.exchange import EventEmitter, HttpRequest, HttpResponse


def test_failing_listener_does_not_stop_others():
    emitter = EventEmitter()
    seen = []

    def boom(*args):
        raise RuntimeError

    emitter.on("ping", boom)
    emitter.on("ping", seen.append)
    assert emitter.emit("ping", 1) is True
    assert seen == [1]
    assert emitter.emit("nobody") is False


def test_request_from_scope():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/items",
        "raw_path": b"/items",
        "query_string": b"a=1&b=2",
        "headers": [(b"Content-Type", b"text/plain")],
        "client": ("127.0.0.1", 4321),
    }
    req = HttpRequest.from_scope(scope)
    assert req.method == "POST"
    assert req.url == "/items?a=1&b=2"
    assert req.path == "/items"
    assert req.query == {"a": "1", "b": "2"}
    assert req.headers == {"content-type": "text/plain"}
    assert (req.remote_address, req.remote_port) == ("127.0.0.1", 4321)
    assert req.raw is scope


def test_response_end_is_idempotent():
    res = HttpResponse()
    finishes = []
    res.on("finish", lambda: finishes.append(1))
    res.start(201, {"X-Id": "1"})
    res.end()
    res.end()
    assert finishes == [1]
    assert res.finished and res.headers_sent
    assert res.status_code == 201
    assert res.headers == {"x-id": "1"}
