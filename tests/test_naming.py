"""Tests for metric, label and unit naming rules."""
import pytest

from promsnap.errors import InvalidSnapshotError
from promsnap.naming import (
    is_valid_label_name,
    is_valid_metric_name,
    is_valid_unit_name,
    prometheus_name,
    sanitize_label_name,
    sanitize_metric_name,
    sanitize_unit_name,
    validate_metric_name,
)


def test_valid_metric_names():
    for name in ["jvm", "http_requests", "a:b", "_private", "my.dotted.name", "Name123"]:
        assert is_valid_metric_name(name), name
        assert validate_metric_name(name) is None


def test_invalid_metric_names():
    for name in ["", None, "0abc", "has space", "dash-name", ".leading_dot", "ümlaut"]:
        assert not is_valid_metric_name(name), name
        assert validate_metric_name(name)


def test_reserved_suffixes_rejected():
    for name in ["requests_total", "jvm_info", "latency_bucket", "start_created", "a.total", "b.info"]:
        error = validate_metric_name(name)
        assert error is not None
        assert "suffix" in error


def test_prometheus_name():
    assert prometheus_name("my.dotted.name") == "my_dotted_name"
    assert prometheus_name("plain") == "plain"


def test_prometheus_name_is_idempotent():
    for name in ["a.b.c", "a_b", "a..b", "", "x.y_z"]:
        once = prometheus_name(name)
        assert prometheus_name(once) == once


def test_sanitize_metric_name():
    assert sanitize_metric_name("my-metric") == "my_metric"
    assert sanitize_metric_name("0x") == "_0x"
    assert sanitize_metric_name("requests_total") == "requests"
    assert sanitize_metric_name("a_total_info") == "a"
    assert sanitize_metric_name("_total") == "total"
    assert sanitize_metric_name("already.valid") == "already.valid"


def test_sanitized_names_are_valid():
    for raw in ["my-metric", "9lives", "x y z", "a_total", "ünïcode", "_info", "weird$chars_bucket", "\u00b2abc", "ends\n"]:
        assert is_valid_metric_name(sanitize_metric_name(raw)), raw


def test_sanitize_empty_metric_name_fails():
    with pytest.raises(InvalidSnapshotError):
        sanitize_metric_name("")


def test_label_names():
    assert is_valid_label_name("env")
    assert is_valid_label_name("service.name")
    assert is_valid_label_name("_x")
    assert not is_valid_label_name("__name__")
    assert not is_valid_label_name("_.x")
    assert not is_valid_label_name("a:b")
    assert not is_valid_label_name("")


def test_sanitize_label_name():
    assert sanitize_label_name("my-label") == "my_label"
    assert sanitize_label_name("__reserved") == "_reserved"
    assert sanitize_label_name("1st") == "_1st"
    assert is_valid_label_name(sanitize_label_name("...dots"))


def test_unit_names():
    assert is_valid_unit_name("seconds")
    assert is_valid_unit_name("kilo.bytes")
    assert not is_valid_unit_name("total")
    assert not is_valid_unit_name("requests_total")
    assert not is_valid_unit_name("per second")
    assert not is_valid_unit_name("")


def test_sanitize_unit_name():
    assert sanitize_unit_name(" seconds ") == "seconds"
    assert sanitize_unit_name("km/h") == "km_h"
    assert sanitize_unit_name("bytes_total") == "bytes"
    with pytest.raises(InvalidSnapshotError):
        sanitize_unit_name("total")
    with pytest.raises(InvalidSnapshotError):
        sanitize_unit_name("   ")


def test_non_ascii_leading_digit_is_replaced():
    assert sanitize_metric_name("²abc") == "_abc"
    assert sanitize_label_name("٣x") == "_x"
    assert is_valid_label_name(sanitize_label_name("٣x"))


def test_trailing_newline_is_invalid():
    assert not is_valid_metric_name("jvm\n")
    assert not is_valid_label_name("env\n")
    assert not is_valid_unit_name("seconds\n")


def test_non_string_names_are_reported():
    assert validate_metric_name(5) == "The metric name must be a string."
    assert not is_valid_label_name(5)
    assert not is_valid_unit_name(b"seconds")
