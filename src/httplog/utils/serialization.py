# /src/httplog/utils/serialization.py
"""
Safe JSON helpers with support for datetime, UUID, Decimal, bytes and sets.
Used as the serializer behind structlog's JSONRenderer.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

class SafeEncoder(json.JSONEncoder):
    def default(self, o: Any):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, (UUID,)):
            return str(o)
        if isinstance(o, (Decimal,)):
            return float(o)
        if isinstance(o, (bytes, bytearray)):
            return o.decode("utf-8", errors="replace")
        if isinstance(o, (set, frozenset)):
            return list(o)
        to_dict = getattr(o, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return repr(o)

def dumps(data: Any, **kwargs: Any) -> str:
    # JSONRenderer passes its own `default`; SafeEncoder.default must win
    kwargs.pop("default", None)
    return json.dumps(data, separators=(",", ":"), cls=SafeEncoder, **kwargs)

def loads(s: str) -> Any:
    return json.loads(s)
