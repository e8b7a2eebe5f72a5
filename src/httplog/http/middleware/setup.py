from __future__ import annotations

from typing import Any, Optional

from starlette.applications import Starlette

from httplog.middleware import HttpLogger

from .logging_middleware import RequestLoggingMiddleware


def setup_http_logging(app: Starlette, http_logger: Optional[HttpLogger] = None, **options: Any) -> HttpLogger:
    """
    Install request logging on a Starlette/FastAPI app and return the HttpLogger.
    Add it last so it wraps every other middleware.
    """
    if http_logger is None:
        http_logger = HttpLogger(**options)
    app.add_middleware(RequestLoggingMiddleware, http_logger=http_logger)
    return http_logger
