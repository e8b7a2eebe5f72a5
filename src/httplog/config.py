"""
Environment configuration for httplog.

- Dataclasses + stdlib, with python-dotenv for .env files.
- Loads from OS env; a .env file in the working directory is parsed with python-dotenv.
- Validation in __post_init__.
- Immutable singleton via functools.lru_cache.
"""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

from dotenv import load_dotenv

# ------------------------------------------------------------------------------
# .env loader
# ------------------------------------------------------------------------------
def _maybe_load_dotenv(env_path: Path) -> None:
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=str(env_path), override=False)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _get_env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key, default)
    if v is not None and v.strip() == "":
        return default
    return v


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
LogFormat = Literal["json", "console"]

_STDLIB_LEVEL = re.compile(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL")


@dataclass(frozen=True)
class Settings:
    # Diagnostics of the library itself (stdlib + structlog globals)
    log_level: str = "INFO"
    log_format: LogFormat = "json"

    # Defaults for loggers built by HttpLogger when no logger is supplied
    http_log_level: str = "info"
    service_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "log_format",
            _validate_choice(self.log_format.strip().lower(), choices=("json", "console"), key="HTTPLOG_LOG_FORMAT"),
        )

        if not _STDLIB_LEVEL.fullmatch(self.log_level.strip()):
            raise ValueError("HTTPLOG_LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        object.__setattr__(self, "log_level", self.log_level.strip().upper())

        # Custom level names are only known once a logger is built; keep it a plain name here
        if not self.http_log_level.strip():
            raise ValueError("HTTPLOG_LEVEL must not be empty")
        object.__setattr__(self, "http_log_level", self.http_log_level.strip().lower())

    def safe_dict(self) -> dict:
        return {
            "log_level": self.log_level,
            "log_format": self.log_format,
            "http_log_level": self.http_log_level,
            "service_name": self.service_name or "<unset>",
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    _maybe_load_dotenv(Path.cwd() / ".env")

    settings = Settings(
        log_level=_get_env_str("HTTPLOG_LOG_LEVEL", "INFO") or "INFO",
        log_format=cast(LogFormat, _get_env_str("HTTPLOG_LOG_FORMAT", "json") or "json"),
        http_log_level=_get_env_str("HTTPLOG_LEVEL", "info") or "info",
        service_name=_get_env_str("HTTPLOG_NAME", None),
    )

    _logger.debug("Settings loaded", extra={"settings": settings.safe_dict()})
    return settings
