"""
Request/response exchange model observed by the logging middleware.

HttpRequest and HttpResponse are the host-side objects: they carry the data the
serializers read and an in-process event emitter the lifecycle observer
subscribes to. Host adapters (see httplog.http.middleware) build them and fire
their events.

Events:
    response: "finish", "error" (error), "close"
    request:  "aborted", "timeout"
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from httplog.logging import get_logger
from httplog.serializers import RequestId

logger = get_logger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """
    In-process event emitter.

    Listeners run synchronously in registration order. A failing listener is
    logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.error("httplog_listener_failed", event_name=event, exc_info=True)
        return bool(listeners)


class HttpRequest(EventEmitter):
    def __init__(
        self,
        method: str = "GET",
        url: str = "/",
        headers: Optional[Mapping[str, str]] = None,
        *,
        id: Optional[RequestId] = None,
        remote_address: Optional[str] = None,
        remote_port: Optional[int] = None,
        raw: Any = None,
    ) -> None:
        super().__init__()
        self.id = id
        self.method = method
        self.url = url
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.remote_address = remote_address
        self.remote_port = remote_port
        self.raw = raw
        self.log: Any = None
        self.all_logs: List[Any] = []

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query))

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> "HttpRequest":
        """Build a request from an ASGI HTTP scope."""
        url = scope.get("raw_path") or scope.get("path", "/")
        if isinstance(url, bytes):
            url = url.decode("latin-1")
        url = url.split("?", 1)[0]
        query_string = scope.get("query_string") or b""
        if query_string:
            url = f"{url}?{query_string.decode('latin-1')}"
        client: Optional[Tuple[str, int]] = scope.get("client")
        return cls(
            method=scope.get("method", "GET"),
            url=url,
            headers=decode_headers(scope.get("headers") or []),
            remote_address=client[0] if client else None,
            remote_port=client[1] if client else None,
            raw=scope,
        )

    def abort(self) -> None:
        self.emit("aborted")

    def timeout(self) -> None:
        self.emit("timeout")

    def __repr__(self) -> str:
        return f"<HttpRequest {self.method} {self.url} id={self.id!r}>"


class HttpResponse(EventEmitter):
    def __init__(self, status_code: int = 200, headers: Optional[Mapping[str, str]] = None) -> None:
        super().__init__()
        self.status_code = status_code
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.headers_sent = False
        self.finished = False
        self.err: Any = None
        self.log: Any = None
        self.start_time: Optional[float] = None
        self.request: Optional[HttpRequest] = None

    def start(self, status_code: int, headers: Optional[Mapping[str, str]] = None) -> None:
        self.status_code = status_code
        if headers is not None:
            self.headers = {k.lower(): v for k, v in headers.items()}
        self.headers_sent = True

    def end(self) -> None:
        if self.finished:
            return
        self.headers_sent = True
        self.finished = True
        self.emit("finish")

    def fail(self, error: Any) -> None:
        self.emit("error", error)

    def close(self) -> None:
        self.emit("close")

    def __repr__(self) -> str:
        return f"<HttpResponse {self.status_code} finished={self.finished}>"


def decode_headers(raw_headers: Any) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for key, value in raw_headers:
        name = key.decode("latin-1") if isinstance(key, bytes) else str(key)
        headers[name.lower()] = value.decode("latin-1") if isinstance(value, bytes) else str(value)
    return headers
