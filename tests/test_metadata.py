"""Tests for MetricMetadata and Unit."""
import pytest

from promsnap.errors import InvalidSnapshotError
from promsnap.metadata import MetricMetadata
from promsnap.units import BYTES, SECONDS, Unit, millis_to_seconds, nanos_to_seconds


def test_valid_names_construct():
    for name in ["jvm", "http_requests", "my.dotted.name", "a:b"]:
        metadata = MetricMetadata(name)
        assert metadata.get_name() == name


def test_invalid_names_fail_with_message():
    for name in ["", "0abc", "requests_total", "bad name", "jvm_info"]:
        with pytest.raises(InvalidSnapshotError) as exc_info:
            MetricMetadata(name)
        assert str(exc_info.value)
        assert "sanitize_metric_name" in str(exc_info.value)


def test_missing_name_fails():
    with pytest.raises(InvalidSnapshotError, match="name is None"):
        MetricMetadata(None)


def test_prometheus_name():
    assert MetricMetadata("jvm_memory").get_prometheus_name() == "jvm_memory"
    dotted = MetricMetadata("jvm.memory.used")
    assert dotted.get_name() == "jvm.memory.used"
    assert dotted.get_prometheus_name() == "jvm_memory_used"


def test_help_and_unit_are_optional():
    metadata = MetricMetadata("request_duration", "Request duration", SECONDS)
    assert metadata.help == "Request duration"
    assert metadata.unit == SECONDS
    assert metadata.has_unit()
    assert not MetricMetadata("x").has_unit()


def test_equality_covers_all_fields():
    assert MetricMetadata("a", "help", BYTES) == MetricMetadata("a", "help", BYTES)
    assert MetricMetadata("a", "help") != MetricMetadata("a", "other help")
    assert MetricMetadata("a", "help") != MetricMetadata("a", "help", BYTES)
    assert MetricMetadata("a", None) != MetricMetadata("a", "")


def test_hash_uses_prometheus_name_only():
    dotted = MetricMetadata("a.b")
    underscored = MetricMetadata("a_b")
    assert hash(dotted) == hash(underscored)
    assert dotted != underscored
    assert len({dotted, underscored}) == 2


def test_with_name_prefix():
    metadata = MetricMetadata("requests", "help", SECONDS)
    prefixed = metadata.with_name_prefix("app_")
    assert prefixed.name == "app_requests"
    assert prefixed.help == "help"
    assert prefixed.unit == SECONDS
    assert metadata.name == "requests"


def test_with_invalid_name_prefix_fails():
    with pytest.raises(InvalidSnapshotError):
        MetricMetadata("requests").with_name_prefix("1-")


def test_metadata_is_immutable():
    metadata = MetricMetadata("x")
    with pytest.raises(AttributeError):
        metadata.name = "y"


def test_unit_validation():
    assert Unit(" seconds ").name == "seconds"
    assert Unit("seconds") == SECONDS
    with pytest.raises(InvalidSnapshotError):
        Unit("")
    with pytest.raises(InvalidSnapshotError):
        Unit("total")
    with pytest.raises(InvalidSnapshotError):
        Unit("per second")


def test_unit_conversions():
    assert nanos_to_seconds(1_500_000_000) == 1.5
    assert millis_to_seconds(250) == 0.25
