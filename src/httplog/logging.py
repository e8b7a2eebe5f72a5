"""
Structured logging using structlog with:
- A level table (standard + custom levels + "silent") shared by the binder and resolver
- Per-logger processor chains: level filter, field serializers, redaction, base fields
- JSON/console switchable rendering
- Multi-target destinations
- Library diagnostics setup (stdlib + structlog globals)

"""

from __future__ import annotations

import logging
import logging.config
import math
import os
import socket
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TextIO, Tuple

import structlog
from pythonjsonlogger import jsonlogger

from httplog.config import Settings, get_settings
from httplog.utils.serialization import dumps

# ---------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------

SILENT = "silent"
MESSAGE_KEY = "msg"

STANDARD_LEVELS: Dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
    "critical": 50,
}

LEVEL_ALIASES: Dict[str, str] = {
    "warn": "warning",
    "fatal": "critical",
    "exception": "error",
}


class LevelTable:
    """
    Known level names of a logger and their numeric values.
    Names are matched trimmed and case-insensitive; "silent" is always known.
    """

    def __init__(self, custom_levels: Optional[Mapping[str, int]] = None) -> None:
        self._values: Dict[str, float] = dict(STANDARD_LEVELS)
        for name, value in (custom_levels or {}).items():
            self._values[name.strip().lower()] = value
        self._values[SILENT] = math.inf

    def canonical(self, name: Any) -> Optional[str]:
        if not name or not isinstance(name, str):
            return None
        key = name.strip().lower()
        key = LEVEL_ALIASES.get(key, key)
        return key if key in self._values else None

    def value(self, name: str) -> float:
        return self._values[name]

    def is_custom(self, name: str) -> bool:
        return name != SILENT and name not in STANDARD_LEVELS

    def nearest_standard(self, name: str) -> str:
        """Highest standard level at or below `name` (debug when below all of them)."""
        value = self._values.get(name, STANDARD_LEVELS["info"])
        below = [(v, n) for n, v in STANDARD_LEVELS.items() if v <= value]
        return max(below)[1] if below else "debug"


# ---------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------


class LevelFilter:
    """Drop events below the minimum level and stamp the canonical level name."""

    def __init__(self, levels: LevelTable, min_level: str) -> None:
        self._levels = levels
        self._min = levels.value(levels.canonical(min_level) or "info")

    def __call__(self, logger, method_name, event_dict):
        name = self._levels.canonical(method_name) or "info"
        if name == SILENT or self._levels.value(name) < self._min:
            raise structlog.DropEvent
        event_dict["level"] = name
        return event_dict


class SerializerProcessor:
    """
    Apply per-field serializers to bound and call-site fields.

    `prebuilt_keys` name the request/response/error fields: a mapping there was
    already serialized by an upstream chain and passes through. Every other
    field always goes through its serializer.
    """

    def __init__(self, serializers: Mapping[str, Callable[[Any], Any]], prebuilt_keys: Iterable[str] = ()) -> None:
        self._serializers = dict(serializers)
        self._prebuilt = frozenset(prebuilt_keys)

    def __call__(self, logger, method_name, event_dict):
        for key, serializer in self._serializers.items():
            if key not in event_dict:
                continue
            value = event_dict[key]
            if value is None or (key in self._prebuilt and isinstance(value, Mapping)):
                continue
            serialized = serializer(value)
            to_dict = getattr(serialized, "to_dict", None)
            event_dict[key] = to_dict() if callable(to_dict) else serialized
        return event_dict


class RedactionProcessor:
    """
    Replace the values at dotted paths ("req.headers.authorization") with a censor.
    Copies every mapping on the way down so bound context is never mutated.
    """
    CENSOR = "[Redacted]"

    def __init__(self, paths: Iterable[str]) -> None:
        self._paths: List[Tuple[str, ...]] = [tuple(p.split(".")) for p in paths if p]

    def __call__(self, logger, method_name, event_dict):
        for path in self._paths:
            head, rest = path[0], path[1:]
            if head in event_dict:
                event_dict[head] = self.CENSOR if not rest else self._redact(event_dict[head], rest)
        return event_dict

    def _redact(self, node: Any, path: Tuple[str, ...]) -> Any:
        if not isinstance(node, Mapping) or path[0] not in node:
            return node
        head, rest = path[0], path[1:]
        copy = dict(node)
        copy[head] = self.CENSOR if not rest else self._redact(node[head], rest)
        return copy


def base_fields(name: Optional[str] = None):
    pid = os.getpid()
    hostname = socket.gethostname()

    def add_base_fields(logger, method_name, event_dict):
        event_dict.setdefault("pid", pid)
        event_dict.setdefault("hostname", hostname)
        if name:
            event_dict.setdefault("name", name)
        return event_dict

    return add_base_fields


def rename_event_key(logger, method_name, event_dict):
    # records logged without a message carry no "event" key at all
    if "event" in event_dict:
        event_dict[MESSAGE_KEY] = event_dict.pop("event")
    return event_dict


# ---------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------


class DestinationLogger(structlog.WriteLogger):
    """WriteLogger that also accepts custom level method names."""

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return self.msg


class TeeStream:
    """File-like fan-out to several destinations."""

    def __init__(self, streams: Sequence[TextIO]) -> None:
        self._streams = list(streams)

    def write(self, data: str) -> int:
        for stream in self._streams:
            stream.write(data)
        return len(data)

    def flush(self) -> None:
        for stream in self._streams:
            stream.flush()


def _open_target(destination: Any) -> TextIO:
    if destination in (None, "stdout", 1):
        return sys.stdout
    if destination in ("stderr", 2):
        return sys.stderr
    if hasattr(destination, "write"):
        return destination
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path.open("a", encoding="utf-8")


def resolve_destination(stream: Optional[TextIO] = None, transport: Optional[Mapping[str, Any]] = None) -> TextIO:
    if transport:
        targets = transport.get("targets") or [transport]
        streams = [_open_target(target.get("destination")) for target in targets]
        return streams[0] if len(streams) == 1 else TeeStream(streams)
    return stream if stream is not None else sys.stdout


# ---------------------------------------------------------------------
# Logger construction
# ---------------------------------------------------------------------


def build_processors(
    *,
    levels: LevelTable,
    level: str,
    serializers: Mapping[str, Callable[[Any], Any]],
    redact: Iterable[str] = (),
    prebuilt_keys: Iterable[str] = (),
    name: Optional[str] = None,
    log_format: str = "json",
) -> List[Any]:
    processors: List[Any] = [
        LevelFilter(levels, level),
        *field_processors(serializers, redact, prebuilt_keys),
        base_fields(name),
        structlog.processors.TimeStamper(fmt="iso", key="time"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(rename_event_key)
        processors.append(structlog.processors.JSONRenderer(serializer=dumps))
    return processors


def field_processors(
    serializers: Mapping[str, Callable[[Any], Any]],
    redact: Iterable[str] = (),
    prebuilt_keys: Iterable[str] = (),
) -> List[Any]:
    processors: List[Any] = [SerializerProcessor(serializers, prebuilt_keys)]
    redact = list(redact)
    if redact:
        processors.append(RedactionProcessor(redact))
    return processors


def build_logger(stream: TextIO, processors: Sequence[Any]) -> structlog.BoundLogger:
    return structlog.BoundLogger(DestinationLogger(stream), list(processors), {})


def derive_logger(parent: Any, processors_before: Sequence[Any]) -> Any:
    """
    Fresh child of `parent` that runs `processors_before` ahead of the parent's chain.
    Works for lazy proxies (structlog.get_logger()) as well as concrete bound loggers.
    """
    bound = parent.bind()
    return type(bound)(
        bound._logger,
        [*processors_before, *bound._processors],
        dict(structlog.get_context(bound)),
    )


# ---------------------------------------------------------------------
# Library diagnostics setup
# ---------------------------------------------------------------------


def _level_name_to_int(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Idempotent configuration of the stdlib/structlog globals used for diagnostics."""
    settings = settings or get_settings()
    log_format = settings.log_format

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "console": {
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if log_format == "json" else "console",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            "httplog": {
                "level": _level_name_to_int(settings.log_level),
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(logging_config)

    processors: Iterable[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.render_to_log_kwargs,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger for the library's own diagnostics."""
    return structlog.get_logger(name)
