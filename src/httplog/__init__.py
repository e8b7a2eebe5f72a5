"""Structured request/response logging middleware built on structlog."""

from httplog.exceptions import ConfigurationError, HttpLogError, HttpStatusError
from httplog.exchange import EventEmitter, HttpRequest, HttpResponse
from httplog.lifecycle import CompletionObserver, Outcome
from httplog.middleware import HttpLogger, create_http_logger
from httplog.options import AttributeKeys, AutoLoggingOptions, HttpLoggerOptions
from httplog.serializers import (
    ErrorView,
    RequestView,
    ResponseView,
    std_serializers,
    wrap_error_serializer,
    wrap_request_serializer,
    wrap_response_serializer,
)

__version__ = "0.1.0"

__all__ = [
    "AttributeKeys",
    "AutoLoggingOptions",
    "CompletionObserver",
    "ConfigurationError",
    "ErrorView",
    "EventEmitter",
    "HttpLogError",
    "HttpLogger",
    "HttpLoggerOptions",
    "HttpRequest",
    "HttpResponse",
    "HttpStatusError",
    "Outcome",
    "RequestView",
    "ResponseView",
    "create_http_logger",
    "std_serializers",
    "wrap_error_serializer",
    "wrap_request_serializer",
    "wrap_response_serializer",
]
