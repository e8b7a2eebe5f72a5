from __future__ import annotations

from typing import Any, MutableMapping, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from httplog.exchange import HttpRequest, HttpResponse, decode_headers
from httplog.middleware import HttpLogger

REQUEST_STATE_KEY = "httplog.request"
RESPONSE_STATE_KEY = "httplog.response"


class RequestLoggingMiddleware:
    """
    Pure ASGI adapter for HttpLogger.

    - Maps the ASGI exchange onto HttpRequest/HttpResponse and fires their
      events: finish after the last body chunk, aborted on client disconnect,
      error when the application raises, close when the exchange is done.
    - Exposes the request logger as request.state.log and every attached
      logger as request.state.all_logs.
    - Stacked instances share one exchange; only the outermost drives events.
    """

    def __init__(self, app: ASGIApp, http_logger: Optional[HttpLogger] = None, **options: Any) -> None:
        self.app = app
        self.http_logger = http_logger if http_logger is not None else HttpLogger(**options)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: MutableMapping[str, Any] = scope.setdefault("state", {})
        if REQUEST_STATE_KEY in state:
            request, response = state[REQUEST_STATE_KEY], state[RESPONSE_STATE_KEY]
            self.http_logger(request, response)
            _expose(state, request)
            await self.app(scope, receive, send)
            return

        request = HttpRequest.from_scope(scope)
        response = HttpResponse()
        state[REQUEST_STATE_KEY] = request
        state[RESPONSE_STATE_KEY] = response
        self.http_logger(request, response)
        _expose(state, request)

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.disconnect" and not response.finished:
                request.abort()
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response.start(message["status"], decode_headers(message.get("headers") or []))
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                response.end()

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as exc:
            if not response.headers_sent:
                response.status_code = 500
            response.fail(exc)
            raise
        finally:
            response.close()


def _expose(state: MutableMapping[str, Any], request: HttpRequest) -> None:
    state["log"] = request.log
    state["all_logs"] = request.all_logs
