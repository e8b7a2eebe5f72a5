"""
One-shot completion of a request/response exchange.

Every terminal signal (response finish / error / close, request aborted /
timeout) is wired to the same transition. The first one wins: it tears down
all registrations, measures the elapsed time and classifies the outcome.
"""
from __future__ import annotations

import enum
import threading
import time
from typing import Any, Callable, Optional, Tuple

from httplog.exceptions import HttpStatusError


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


RESPONSE_EVENTS = ("finish", "error", "close")
REQUEST_EVENTS = ("aborted", "timeout")

REQUEST_TIMEOUT_STATUS = 408

OnComplete = Callable[[Outcome, Any, float], None]


def classify(response: Any, error: Any = None) -> Tuple[Outcome, Any]:
    """Error beats aborted; a 5xx without an error gets a synthesized one."""
    if error is None:
        error = getattr(response, "err", None)
    if error is None:
        status = getattr(response, "status_code", None)
        if isinstance(status, int) and status >= 500:
            error = HttpStatusError(status)
    if error is not None:
        return Outcome.ERROR, error
    if not getattr(response, "finished", False):
        return Outcome.ABORTED, None
    return Outcome.SUCCESS, None


def elapsed_ms(start: Optional[float]) -> float:
    if start is None:
        return 0.0
    return round((time.perf_counter() - start) * 1000, 2)


class CompletionObserver:
    def __init__(self, request: Any, response: Any, on_complete: OnComplete) -> None:
        self.request = request
        self.response = response
        self._on_complete = on_complete
        self._lock = threading.Lock()
        self._completed = False
        self._handlers = {
            "finish": lambda *args: self.complete("finish"),
            "error": lambda err=None, *args: self.complete("error", err),
            "close": lambda *args: self.complete("close"),
            "aborted": lambda *args: self.complete("aborted"),
            "timeout": lambda *args: self.complete("timeout"),
        }

    @property
    def completed(self) -> bool:
        return self._completed

    def watch(self) -> "CompletionObserver":
        for event in RESPONSE_EVENTS:
            self.response.on(event, self._handlers[event])
        for event in REQUEST_EVENTS:
            self.request.on(event, self._handlers[event])
        return self

    def _unwatch(self) -> None:
        for event in RESPONSE_EVENTS:
            self.response.remove_listener(event, self._handlers[event])
        for event in REQUEST_EVENTS:
            self.request.remove_listener(event, self._handlers[event])

    def complete(self, trigger: str, error: Any = None) -> bool:
        """Run the completion once. Returns False when it already ran."""
        with self._lock:
            if self._completed:
                return False
            self._completed = True

        self._unwatch()
        response = self.response
        if trigger in REQUEST_EVENTS and not getattr(response, "headers_sent", False):
            response.status_code = REQUEST_TIMEOUT_STATUS

        response_time = elapsed_ms(getattr(response, "start_time", None))
        outcome, error = classify(response, error)
        self._on_complete(outcome, error, response_time)
        return True
