"""
Level selection and auto-logging decisions.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from httplog.hooks import call_hook
from httplog.logging import LevelTable, get_logger
from httplog.options import AutoLoggingOptions

log = get_logger("httplog.policy")

DEFAULT_LEVEL = "info"


# ---------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------


def _positional_arity(func: Callable[..., Any]) -> Optional[int]:
    """Number of positional parameters, or None when it takes *args or can't be inspected."""
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return None
    count = 0
    for param in params:
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


class LevelResolver:
    """
    Picks the level of a completion record.

    Without a callback every record uses the default level. A callback is
    called as (request, response, error); a callback declaring exactly two
    positional parameters gets the older (response, error) form instead.
    """

    def __init__(
        self,
        levels: LevelTable,
        use_level: Optional[str] = None,
        custom_log_level: Optional[Callable[..., Optional[str]]] = None,
    ) -> None:
        self._levels = levels
        self._callback = custom_log_level
        self._legacy = custom_log_level is not None and _positional_arity(custom_log_level) == 2

        default = levels.canonical(use_level) if use_level is not None else None
        if use_level is not None and default is None:
            log.warning("httplog_unknown_level", requested=use_level, fallback=DEFAULT_LEVEL)
        self.default_level: str = default or DEFAULT_LEVEL

    def resolve(self, request: Any, response: Any, error: Any = None) -> str:
        if self._callback is None:
            return self.default_level

        args = (response, error) if self._legacy else (request, response, error)
        name = call_hook("custom_log_level", self._callback, *args)
        level = self._levels.canonical(name)
        if level is None:
            if name is not None:
                log.warning("httplog_unknown_level", requested=name, fallback=self.default_level)
            return self.default_level
        return level


# ---------------------------------------------------------------------
# Auto-logging
# ---------------------------------------------------------------------


class AutoLoggingPolicy:
    """Path filter first, then the ignore predicate. An ignored request logs nothing."""

    def __init__(self, auto: AutoLoggingOptions) -> None:
        self._auto = auto

    @property
    def enabled(self) -> bool:
        return self._auto.enabled

    def effective_path(self, request: Any) -> str:
        path = None
        if self._auto.get_path is not None:
            path = call_hook("auto_logging.get_path", self._auto.get_path, request)
        if not isinstance(path, str):
            path = getattr(request, "url", None)
        path = str(path or "")
        # urlsplit reads a leading "//" as a netloc
        if path.startswith("/"):
            return path.split("?", 1)[0].split("#", 1)[0]
        return urlsplit(path).path

    def should_log(self, request: Any) -> bool:
        if not self._auto.enabled:
            return False

        if self._auto.ignore_paths:
            path = self.effective_path(request)
            for pattern in self._auto.ignore_paths:
                if isinstance(pattern, str):
                    if pattern == path:
                        return False
                elif pattern.search(path):
                    return False

        if self._auto.ignore is not None:
            if call_hook("auto_logging.ignore", self._auto.ignore, request, default=False):
                return False

        return True
