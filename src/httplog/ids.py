from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from httplog.hooks import call_hook
from httplog.serializers import RequestId

MAX_REQUEST_ID = 2**31 - 1

GenReqId = Callable[[Any, Any], RequestId]


class RequestIdGenerator:
    """
    Correlation ids for one middleware instance.

    A request that already carries an id keeps it. Otherwise the configured
    callback decides; without one (or when it yields nothing usable) a
    per-instance counter runs 1..MAX_REQUEST_ID and wraps back to 1.
    """

    def __init__(self, gen_req_id: Optional[GenReqId] = None) -> None:
        self._gen_req_id = gen_req_id
        self._last_id = 0
        self._lock = threading.Lock()

    def __call__(self, request: Any, response: Any) -> RequestId:
        existing = getattr(request, "id", None)
        if existing is not None and not callable(existing):
            return existing

        if self._gen_req_id is not None:
            request_id = call_hook("gen_req_id", self._gen_req_id, request, response)
            if request_id is not None and not callable(request_id):
                return request_id

        return self._next()

    def _next(self) -> int:
        with self._lock:
            self._last_id = self._last_id % MAX_REQUEST_ID + 1
            return self._last_id
