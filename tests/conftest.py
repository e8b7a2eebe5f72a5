import io

import pytest

from httplog.config import get_settings
from httplog.exchange import HttpRequest, HttpResponse
from httplog.utils.serialization import loads


class LogCapture(io.StringIO):
    """In-memory destination; one JSON record per line."""

    def records(self):
        return [loads(line) for line in self.getvalue().splitlines() if line.strip()]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for key in ("HTTPLOG_LOG_LEVEL", "HTTPLOG_LOG_FORMAT", "HTTPLOG_LEVEL", "HTTPLOG_NAME"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def capture():
    return LogCapture()


@pytest.fixture
def exchange():
    def make(method="GET", url="/", headers=None, **kwargs):
        return HttpRequest(method, url, headers, **kwargs), HttpResponse()
    return make
