"""
Message/object customization hooks for the received, success and error records.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from httplog.logging import get_logger

log = get_logger("httplog.hooks")

DEFAULT_COMPLETED_MESSAGE = "request completed"
DEFAULT_ABORTED_MESSAGE = "request aborted"
DEFAULT_ERRORED_MESSAGE = "request errored"

Record = Tuple[Dict[str, Any], Optional[str]]


def call_hook(name: str, hook: Callable[..., Any], *args: Any, default: Any = None) -> Any:
    """Invoke a user callback; a raising callback yields `default` and a warning."""
    try:
        return hook(*args)
    except Exception:
        log.warning("httplog_hook_failed", hook=name, exc_info=True)
        return default


class MessageHooks:
    """
    Builds (payload, message) pairs for the three record kinds.
    Object hooks receive the default payload so they can extend it.
    """

    def __init__(self, options: Any) -> None:
        self._keys = options.custom_attribute_keys
        self._received_message = options.custom_received_message
        self._received_object = options.custom_received_object
        self._success_message = options.custom_success_message
        self._success_object = options.custom_success_object
        self._error_message = options.custom_error_message
        self._error_object = options.custom_error_object

    @property
    def wants_received(self) -> bool:
        return self._received_message is not None or self._received_object is not None

    def received(self, request: Any, response: Any) -> Record:
        payload: Dict[str, Any] = {}
        if self._received_object is not None:
            payload = self._payload("custom_received_object", self._received_object, payload, request, response, payload)
        message = None
        if self._received_message is not None:
            message = call_hook("custom_received_message", self._received_message, request, response)
        return payload, message

    def success(self, request: Any, response: Any, response_time: float, *, aborted: bool = False) -> Record:
        keys = self._keys
        payload: Dict[str, Any] = {keys.res: response, keys.response_time: response_time}
        if self._success_object is not None:
            payload = self._payload("custom_success_object", self._success_object, payload, request, response, payload)

        default_message = DEFAULT_ABORTED_MESSAGE if aborted else DEFAULT_COMPLETED_MESSAGE
        message = default_message
        if self._success_message is not None:
            message = call_hook(
                "custom_success_message", self._success_message, request, response, response_time,
                default=default_message,
            )
        return payload, message

    def error(self, request: Any, response: Any, error: Any, response_time: float) -> Record:
        keys = self._keys
        payload: Dict[str, Any] = {keys.res: response, keys.err: error, keys.response_time: response_time}
        if self._error_object is not None:
            payload = self._payload("custom_error_object", self._error_object, payload, request, response, error, payload)

        message = DEFAULT_ERRORED_MESSAGE
        if self._error_message is not None:
            message = call_hook(
                "custom_error_message", self._error_message, request, response, error, response_time,
                default=DEFAULT_ERRORED_MESSAGE,
            )
        return payload, message

    @staticmethod
    def _payload(name: str, hook: Callable[..., Any], default: Dict[str, Any], *args: Any) -> Dict[str, Any]:
        # hooks get a copy so an in-place edit can't leak into the fallback
        args = args[:-1] + (dict(args[-1]),)
        result = call_hook(name, hook, *args, default=default)
        if not isinstance(result, Mapping):
            log.warning("httplog_hook_invalid_payload", hook=name, type=type(result).__name__)
            return default
        return dict(result)
