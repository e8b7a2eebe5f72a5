import io
import re

import pytest

from httplog import HttpLogger
from httplog.exceptions import ConfigurationError, HttpLogError
from httplog.options import AttributeKeys, AutoLoggingOptions, HttpLoggerOptions


def test_use_level_and_custom_log_level_are_exclusive():
    with pytest.raises(ConfigurationError) as exc:
        HttpLoggerOptions(use_level="info", custom_log_level=lambda req, res, err: "info")
    assert exc.value.code == "invalid_configuration"
    assert isinstance(exc.value, HttpLogError)


def test_conflict_fails_before_any_request():
    with pytest.raises(ConfigurationError):
        HttpLogger(io.StringIO(), use_level="info", custom_log_level=lambda req, res, err: "info")


def test_hooks_must_be_callable():
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(custom_success_message="done")
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(gen_req_id=42)


def test_custom_props_accepts_mapping_or_callable():
    assert HttpLoggerOptions(custom_props={"a": 1}).custom_props == {"a": 1}
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(custom_props=["a"])


def test_invalid_log_format_and_stream():
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(log_format="xml")
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(stream=object())


def test_custom_levels_must_be_ints():
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(custom_levels={"audit": "high"})
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(custom_levels={"audit": True})


def test_attribute_keys_from_mapping():
    keys = AttributeKeys.coerce({"req": "request", "responseTime": "duration", "req_id": "rid"})
    assert keys == AttributeKeys(req="request", res="res", err="err", req_id="rid", response_time="duration")


def test_attribute_keys_rejects_unknown_and_empty():
    with pytest.raises(ConfigurationError):
        AttributeKeys.coerce({"request": "r"})
    with pytest.raises(ConfigurationError):
        AttributeKeys.coerce({"req": ""})


def test_auto_logging_coercion():
    assert HttpLoggerOptions().auto_logging == AutoLoggingOptions()
    assert HttpLoggerOptions(auto_logging=False).auto_logging.enabled is False

    pattern = re.compile(r"^/internal/")
    auto = HttpLoggerOptions(auto_logging={"ignore_paths": ["/health", pattern]}).auto_logging
    assert auto.ignore_paths == ("/health", pattern)
    assert AutoLoggingOptions(ignore_paths="/health").ignore_paths == ("/health",)


def test_auto_logging_rejects_bad_values():
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(auto_logging={"ignore_path": ["/health"]})
    with pytest.raises(ConfigurationError):
        AutoLoggingOptions(ignore_paths=[42])
    with pytest.raises(ConfigurationError):
        AutoLoggingOptions(ignore="yes")
    with pytest.raises(ConfigurationError):
        HttpLoggerOptions(auto_logging="off")


def test_redact_accepts_single_path():
    assert HttpLoggerOptions(redact="req.headers.cookie").redact == ("req.headers.cookie",)
