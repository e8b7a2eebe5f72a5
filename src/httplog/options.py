"""
Middleware options.

- Frozen dataclasses, validated once in __post_init__.
- Loose inputs (mappings for attribute keys / auto-logging, lists for paths)
  are normalized to their typed form during validation.
- Conflicting options fail fast with ConfigurationError.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import re
from typing import Any, Callable, Dict, Mapping, Optional, TextIO, Tuple, Union

from httplog.exceptions import ConfigurationError

PathPattern = Union[str, re.Pattern[str]]


# ------------------------------------------------------------------------------
# Attribute keys
# ------------------------------------------------------------------------------
@dataclass(frozen=True)
class AttributeKeys:
    req: str = "req"
    res: str = "res"
    err: str = "err"
    req_id: str = "reqId"
    response_time: str = "responseTime"

    # camelCase spellings are accepted as well
    _ALIASES = {"reqId": "req_id", "responseTime": "response_time"}

    @classmethod
    def coerce(cls, value: Union[None, "AttributeKeys", Mapping[str, str]]) -> "AttributeKeys":
        if value is None:
            return cls()
        if isinstance(value, AttributeKeys):
            return value
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                "custom_attribute_keys must be a mapping or AttributeKeys",
                details={"type": type(value).__name__},
            )
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, str] = {}
        for key, name in value.items():
            attr = cls._ALIASES.get(key, key)
            if attr not in known:
                raise ConfigurationError(f"Unknown custom attribute key: {key!r}", details={"known": sorted(known)})
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"Attribute key {key!r} must be a non-empty string")
            kwargs[attr] = name
        return cls(**kwargs)


# ------------------------------------------------------------------------------
# Auto-logging
# ------------------------------------------------------------------------------
@dataclass(frozen=True)
class AutoLoggingOptions:
    enabled: bool = True
    ignore: Optional[Callable[[Any], bool]] = None
    ignore_paths: Tuple[PathPattern, ...] = ()
    get_path: Optional[Callable[[Any], str]] = None

    def __post_init__(self) -> None:
        _require_callable("auto_logging.ignore", self.ignore)
        _require_callable("auto_logging.get_path", self.get_path)
        paths = self.ignore_paths
        if isinstance(paths, (str, re.Pattern)):
            paths = (paths,)
        paths = tuple(paths or ())
        for p in paths:
            if not isinstance(p, (str, re.Pattern)):
                raise ConfigurationError(
                    "auto_logging.ignore_paths entries must be strings or compiled patterns",
                    details={"type": type(p).__name__},
                )
        object.__setattr__(self, "ignore_paths", paths)

    @classmethod
    def coerce(cls, value: Union[None, bool, "AutoLoggingOptions", Mapping[str, Any]]) -> "AutoLoggingOptions":
        if value is None or value is True:
            return cls()
        if value is False:
            return cls(enabled=False)
        if isinstance(value, AutoLoggingOptions):
            return value
        if isinstance(value, Mapping):
            unknown = set(value) - {"enabled", "ignore", "ignore_paths", "get_path"}
            if unknown:
                raise ConfigurationError(f"Unknown auto_logging options: {sorted(unknown)}")
            return cls(**value)
        raise ConfigurationError(
            "auto_logging must be a bool, a mapping or AutoLoggingOptions",
            details={"type": type(value).__name__},
        )


# ------------------------------------------------------------------------------
# HttpLogger options (immutable)
# ------------------------------------------------------------------------------
HOOK_FIELDS = (
    "gen_req_id",
    "custom_log_level",
    "custom_received_message",
    "custom_received_object",
    "custom_success_message",
    "custom_success_object",
    "custom_error_message",
    "custom_error_object",
)


def _require_callable(name: str, value: Any) -> None:
    if value is not None and not callable(value):
        raise ConfigurationError(f"{name} must be callable", details={"type": type(value).__name__})


@dataclass(frozen=True)
class HttpLoggerOptions:
    # Logger construction
    logger: Any = None
    stream: Optional[TextIO] = None
    level: Optional[str] = None
    name: Optional[str] = None
    custom_levels: Mapping[str, int] = field(default_factory=dict)
    serializers: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    redact: Tuple[str, ...] = ()
    transport: Optional[Dict[str, Any]] = None
    log_format: Optional[str] = None

    # Request lifecycle logging
    gen_req_id: Optional[Callable[[Any, Any], Any]] = None
    use_level: Optional[str] = None
    custom_log_level: Optional[Callable[..., Optional[str]]] = None
    auto_logging: Union[bool, AutoLoggingOptions, Mapping[str, Any]] = True
    custom_received_message: Optional[Callable[[Any, Any], Any]] = None
    custom_received_object: Optional[Callable[[Any, Any, Dict[str, Any]], Mapping[str, Any]]] = None
    custom_success_message: Optional[Callable[[Any, Any, float], Any]] = None
    custom_success_object: Optional[Callable[[Any, Any, Dict[str, Any]], Mapping[str, Any]]] = None
    custom_error_message: Optional[Callable[[Any, Any, Any, float], Any]] = None
    custom_error_object: Optional[Callable[[Any, Any, Any, Dict[str, Any]], Mapping[str, Any]]] = None
    custom_attribute_keys: Union[AttributeKeys, Mapping[str, str], None] = None
    custom_props: Union[Callable[[Any, Any], Mapping[str, Any]], Mapping[str, Any], None] = None
    wrap_serializers: bool = True
    quiet_req_logger: bool = False
    quiet_res_logger: bool = False

    def __post_init__(self) -> None:
        if self.use_level is not None and self.custom_log_level is not None:
            raise ConfigurationError("use_level and custom_log_level cannot be used together")

        for name in HOOK_FIELDS:
            _require_callable(name, getattr(self, name))

        if self.custom_props is not None and not (callable(self.custom_props) or isinstance(self.custom_props, Mapping)):
            raise ConfigurationError(
                "custom_props must be callable or a mapping",
                details={"type": type(self.custom_props).__name__},
            )

        if self.log_format is not None and self.log_format not in ("json", "console"):
            raise ConfigurationError(f"log_format must be 'json' or 'console', got {self.log_format!r}")

        for level_name, value in (self.custom_levels or {}).items():
            if not isinstance(level_name, str) or not level_name.strip():
                raise ConfigurationError("custom_levels names must be non-empty strings")
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"custom level {level_name!r} must map to an int")

        if self.stream is not None and not hasattr(self.stream, "write"):
            raise ConfigurationError("stream must be a writable file-like object")

        if self.transport is not None and not isinstance(self.transport, dict):
            raise ConfigurationError("transport must be a dict")

        redact = self.redact
        object.__setattr__(self, "redact", (redact,) if isinstance(redact, str) else tuple(redact or ()))
        object.__setattr__(self, "custom_levels", dict(self.custom_levels or {}))
        object.__setattr__(self, "serializers", dict(self.serializers or {}))
        object.__setattr__(self, "custom_attribute_keys", AttributeKeys.coerce(self.custom_attribute_keys))
        object.__setattr__(self, "auto_logging", AutoLoggingOptions.coerce(self.auto_logging))
