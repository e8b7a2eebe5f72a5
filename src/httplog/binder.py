"""
Base logger construction and per-request child loggers.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, TextIO

from httplog.config import get_settings
from httplog.hooks import call_hook
from httplog.logging import (
    SILENT,
    LevelTable,
    build_logger,
    build_processors,
    derive_logger,
    field_processors,
    get_logger,
    resolve_destination,
)
from httplog.options import HttpLoggerOptions
from httplog.serializers import (
    serialize_error,
    serialize_request,
    serialize_response,
    wrap_error_serializer,
    wrap_request_serializer,
    wrap_response_serializer,
)

log = get_logger("httplog.binder")

_PACKAGE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class RequestLoggers:
    request: Any        # exposed as request.log while the request is handled
    response: Any       # carries the terminal record
    full_request: Any   # full request object plus custom props; carries the received record


def _caller_file() -> Optional[str]:
    """Path of the first frame outside this package (the code configuring the logger)."""
    for frame in inspect.stack(context=0):
        path = Path(frame.filename).resolve()
        if path != _PACKAGE_DIR and _PACKAGE_DIR not in path.parents:
            return str(path)
    return None


class LoggerBinder:
    def __init__(self, options: HttpLoggerOptions, stream: Optional[TextIO] = None) -> None:
        self.options = options
        self.keys = options.custom_attribute_keys
        self.levels = LevelTable(options.custom_levels)
        self.serializers = self._serializers()
        self.prebuilt_keys = (self.keys.req, self.keys.res, self.keys.err)
        self.transport = self._stamp_transport(options.transport)
        # a supplied logger keeps its own renderer and destination
        self.derived = options.logger is not None
        self.logger = self._bind(stream if stream is not None else options.stream)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _serializers(self) -> Dict[str, Callable[[Any], Any]]:
        keys = self.keys
        overrides = self.options.serializers
        wrap = self.options.wrap_serializers
        defaults = (
            ("req", keys.req, serialize_request, wrap_request_serializer),
            ("res", keys.res, serialize_response, wrap_response_serializer),
            ("err", keys.err, serialize_error, wrap_error_serializer),
        )
        serializers: Dict[str, Callable[[Any], Any]] = {}
        for default_key, key, standard, wrapper in defaults:
            custom = overrides.get(key) or overrides.get(default_key)
            if custom is None:
                serializers[key] = standard
            else:
                serializers[key] = wrapper(custom) if wrap else custom
        known = {"req", "res", "err", keys.req, keys.res, keys.err}
        for key, serializer in overrides.items():
            if key not in known:
                serializers[key] = serializer
        return serializers

    @staticmethod
    def _stamp_transport(transport: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not transport or "caller" in transport:
            return transport
        return {**transport, "caller": _caller_file()}

    def _bind(self, stream: Optional[TextIO]) -> Any:
        options = self.options
        if self.derived:
            return derive_logger(options.logger, field_processors(self.serializers, options.redact, self.prebuilt_keys))

        settings = get_settings()
        processors = build_processors(
            levels=self.levels,
            level=options.level or settings.http_log_level,
            serializers=self.serializers,
            redact=options.redact,
            prebuilt_keys=self.prebuilt_keys,
            name=options.name or settings.service_name,
            log_format=options.log_format or settings.log_format,
        )
        return build_logger(resolve_destination(stream, self.transport), processors)

    # ------------------------------------------------------------------
    # Per request
    # ------------------------------------------------------------------

    def custom_props(self, request: Any, response: Any) -> Dict[str, Any]:
        props = self.options.custom_props
        if props is None:
            return {}
        if callable(props):
            props = call_hook("custom_props", props, request, response, default={})
        if not isinstance(props, Mapping):
            log.warning("httplog_hook_invalid_payload", hook="custom_props", type=type(props).__name__)
            return {}
        return dict(props)

    def attach(self, request: Any, response: Any) -> RequestLoggers:
        options = self.options
        keys = self.keys

        id_logger = self.logger.bind(**{keys.req_id: request.id})
        base = id_logger if options.quiet_req_logger else self.logger
        full = base.bind(**{keys.req: request})

        props = self.custom_props(request, response)
        full_with_props = full.bind(**props) if props else full
        if options.quiet_req_logger:
            request_logger = id_logger.bind(**props) if props else id_logger
        else:
            request_logger = full_with_props
        response_logger = base if options.quiet_res_logger else full

        all_logs = getattr(request, "all_logs", None)
        if all_logs is None:
            all_logs = []
            request.all_logs = all_logs
        all_logs.append(request_logger)
        if getattr(request, "log", None) is None:
            request.log = request_logger
        if getattr(response, "log", None) is None:
            response.log = response_logger

        return RequestLoggers(request=request_logger, response=response_logger, full_request=full_with_props)

    def emit(self, logger: Any, level: str, payload: Mapping[str, Any], message: Optional[str]) -> None:
        if level == SILENT:
            return
        method_name = level
        if self.derived and self.levels.is_custom(level):
            method_name = self.levels.nearest_standard(level)
        try:
            getattr(logger, method_name)(message, **payload)
        except Exception:
            log.warning("httplog_emit_failed", record_level=level, exc_info=True)
