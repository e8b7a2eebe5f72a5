"""
HttpLogger: the request/response logging middleware.

    http_logger = HttpLogger(stream=sys.stdout, custom_props=lambda req, res: {"tenant": ...})

    def handle(request, response):
        http_logger(request, response)
        request.log.info("something happened")
        ...
        response.end()

One instance per configuration. Calling it with a request/response pair
assigns the correlation id, attaches the child loggers, emits the optional
"received" record and registers the completion observer. The terminal
record is written when the host fires a terminal event on the pair.
"""
from __future__ import annotations

import dataclasses
import time
from functools import partial
from typing import Any, Callable, Mapping, Optional, TextIO, Union

from httplog.binder import LoggerBinder, RequestLoggers
from httplog.hooks import MessageHooks
from httplog.ids import RequestIdGenerator
from httplog.lifecycle import CompletionObserver, Outcome
from httplog.logging import SILENT, LevelTable
from httplog.options import HttpLoggerOptions
from httplog.policy import AutoLoggingPolicy, LevelResolver


def _coerce_options(
    options: Union[None, HttpLoggerOptions, Mapping[str, Any]],
    overrides: Mapping[str, Any],
) -> HttpLoggerOptions:
    if options is None:
        return HttpLoggerOptions(**overrides)
    if isinstance(options, HttpLoggerOptions):
        return dataclasses.replace(options, **overrides) if overrides else options
    return HttpLoggerOptions(**{**options, **overrides})


class HttpLogger:
    def __init__(
        self,
        options: Union[None, HttpLoggerOptions, Mapping[str, Any], TextIO] = None,
        stream: Optional[TextIO] = None,
        **kwargs: Any,
    ) -> None:
        # HttpLogger(sys.stderr) is shorthand for HttpLogger(stream=sys.stderr)
        if options is not None and not isinstance(options, (HttpLoggerOptions, Mapping)) and hasattr(options, "write"):
            options, stream = None, options

        self.options = _coerce_options(options, kwargs)
        self._binder = LoggerBinder(self.options, stream)
        self._ids = RequestIdGenerator(self.options.gen_req_id)
        self._resolver = LevelResolver(self._binder.levels, self.options.use_level, self.options.custom_log_level)
        self._policy = AutoLoggingPolicy(self.options.auto_logging)
        self._hooks = MessageHooks(self.options)

    @property
    def logger(self) -> Any:
        return self._binder.logger

    @property
    def levels(self) -> LevelTable:
        return self._binder.levels

    @property
    def transport(self) -> Optional[dict]:
        return self._binder.transport

    def __call__(self, request: Any, response: Any, call_next: Optional[Callable[[], Any]] = None) -> Any:
        response.request = request
        if getattr(response, "start_time", None) is None:
            response.start_time = time.perf_counter()

        request.id = self._ids(request, response)
        loggers = self._binder.attach(request, response)

        if self._policy.should_log(request):
            if self._hooks.wants_received:
                self._log_received(request, response, loggers)
            on_complete = partial(self._log_completed, request, response, loggers)
            CompletionObserver(request, response, on_complete).watch()

        if call_next is not None:
            return call_next()
        return None

    def _log_received(self, request: Any, response: Any, loggers: RequestLoggers) -> None:
        level = self._resolver.resolve(request, response, None)
        if level == SILENT:
            return
        payload, message = self._hooks.received(request, response)
        self._binder.emit(loggers.full_request, level, payload, message)

    def _log_completed(
        self,
        request: Any,
        response: Any,
        loggers: RequestLoggers,
        outcome: Outcome,
        error: Any,
        response_time: float,
    ) -> None:
        level = self._resolver.resolve(request, response, error)
        if level == SILENT:
            return

        log = loggers.response
        props = self._binder.custom_props(request, response)
        if props:
            log = log.bind(**props)

        if outcome is Outcome.ERROR:
            payload, message = self._hooks.error(request, response, error, response_time)
        else:
            payload, message = self._hooks.success(
                request, response, response_time, aborted=outcome is Outcome.ABORTED,
            )
        self._binder.emit(log, level, payload, message)


def create_http_logger(
    options: Union[None, HttpLoggerOptions, Mapping[str, Any], TextIO] = None,
    stream: Optional[TextIO] = None,
    **kwargs: Any,
) -> HttpLogger:
    return HttpLogger(options, stream, **kwargs)
