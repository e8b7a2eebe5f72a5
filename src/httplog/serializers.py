"""
Standard request / response / error serializers.

Serializers receive a normalized *view* of the host object (RequestView,
ResponseView, ErrorView). Every view keeps a `raw` back-reference to the
original object for custom serializers; `raw` is excluded from the
serialized output.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlsplit

Serializer = Callable[[Any], Any]

# Correlation ids are opaque to consumers: a string, a number or a mapping
RequestId = Union[str, int, Mapping[str, Any]]

_NOT_SERIALIZED = {"serialize": False}


def _serializable(view: Any) -> Dict[str, Any]:
    return {
        f.name: getattr(view, f.name)
        for f in fields(view)
        if f.metadata.get("serialize", True)
    }


def _plain_headers(headers: Any) -> Dict[str, str]:
    if not headers:
        return {}
    try:
        return {str(k).lower(): str(v) for k, v in dict(headers).items()}
    except (TypeError, ValueError):
        return {}


@dataclass
class RequestView:
    id: Optional[RequestId]
    method: Optional[str]
    url: Optional[str]
    query: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    remote_address: Optional[str] = None
    remote_port: Optional[int] = None
    raw: Any = field(default=None, repr=False, compare=False, metadata=_NOT_SERIALIZED)

    @classmethod
    def from_request(cls, request: Any) -> "RequestView":
        if isinstance(request, RequestView):
            return request
        request_id = getattr(request, "id", None)
        if callable(request_id):
            request_id = None
        url = getattr(request, "url", None)
        url = str(url) if url is not None else None
        query = getattr(request, "query", None)
        if query is None and url:
            query = dict(parse_qsl(urlsplit(url).query))
        return cls(
            id=request_id,
            method=getattr(request, "method", None),
            url=url,
            query=dict(query or {}),
            params=dict(getattr(request, "params", None) or {}),
            headers=_plain_headers(getattr(request, "headers", None)),
            remote_address=getattr(request, "remote_address", None),
            remote_port=getattr(request, "remote_port", None),
            raw=request,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _serializable(self)


@dataclass
class ResponseView:
    status_code: Optional[int]
    headers: Dict[str, str] = field(default_factory=dict)
    raw: Any = field(default=None, repr=False, compare=False, metadata=_NOT_SERIALIZED)

    @classmethod
    def from_response(cls, response: Any) -> "ResponseView":
        if isinstance(response, ResponseView):
            return response
        return cls(
            status_code=getattr(response, "status_code", None),
            headers=_plain_headers(getattr(response, "headers", None)),
            raw=response,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _serializable(self)


@dataclass
class ErrorView:
    type: str
    message: str
    stack: Optional[str] = None
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    raw: Any = field(default=None, repr=False, compare=False, metadata=_NOT_SERIALIZED)

    @classmethod
    def from_error(cls, error: Any) -> "ErrorView":
        if isinstance(error, ErrorView):
            return error
        stack = None
        if isinstance(error, BaseException) and error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        details = getattr(error, "details", None)
        return cls(
            type=type(error).__name__,
            message=str(error),
            stack=stack,
            code=getattr(error, "code", None) if isinstance(error, BaseException) else None,
            details=dict(details) if isinstance(details, Mapping) else None,
            raw=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in _serializable(self).items() if v is not None}


# ---------------------------------------------------------------------
# Standard serializers
# ---------------------------------------------------------------------


def serialize_request(request: Any) -> Dict[str, Any]:
    return RequestView.from_request(request).to_dict()


def serialize_response(response: Any) -> Dict[str, Any]:
    return ResponseView.from_response(response).to_dict()


def serialize_error(error: Any) -> Dict[str, Any]:
    return ErrorView.from_error(error).to_dict()


std_serializers: Dict[str, Serializer] = {
    "req": serialize_request,
    "res": serialize_response,
    "err": serialize_error,
}


# ---------------------------------------------------------------------
# Wrappers: hand serializers a view instead of the raw host object
# ---------------------------------------------------------------------


def wrap_request_serializer(serializer: Serializer) -> Serializer:
    def wrapped(request: Any) -> Any:
        return serializer(RequestView.from_request(request))
    return wrapped


def wrap_response_serializer(serializer: Serializer) -> Serializer:
    def wrapped(response: Any) -> Any:
        return serializer(ResponseView.from_response(response))
    return wrapped


def wrap_error_serializer(serializer: Serializer) -> Serializer:
    def wrapped(error: Any) -> Any:
        return serializer(ErrorView.from_error(error))
    return wrapped
