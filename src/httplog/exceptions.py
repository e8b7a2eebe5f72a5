from __future__ import annotations

from typing import Any, Dict, Optional


# ───────────────────────── Base ─────────────────────────
class HttpLogError(Exception):
    """Base class for errors raised by httplog."""
    code: str = "httplog_error"
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        self.message = message or self.__class__.__name__
        self.details = details


class ConfigurationError(HttpLogError):
    """Raised once, at construction time, for invalid or conflicting options."""
    code = "invalid_configuration"


# ───────────────────────── Outcome errors ─────────────────────────
class HttpStatusError(HttpLogError):
    """Synthesized when a response finishes with a 5xx status and no explicit error."""
    code = "http_status"

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"failed with status code {status_code}",
            details={"status_code": status_code},
        )
        self.status_code = status_code
