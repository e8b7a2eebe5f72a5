from .logging_middleware import REQUEST_STATE_KEY, RESPONSE_STATE_KEY, RequestLoggingMiddleware
from .setup import setup_http_logging

__all__ = [
    "REQUEST_STATE_KEY",
    "RESPONSE_STATE_KEY",
    "RequestLoggingMiddleware",
    "setup_http_logging",
]
