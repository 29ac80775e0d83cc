"""Tests for Labels."""
import pytest

from promsnap.errors import IncompatibleMergeError, InvalidSnapshotError, LabelConflictError
from promsnap.labels import Label, Labels


def test_labels_are_sorted_by_name():
    labels = Labels.of("zone", "a", "env", "prod", "app", "web")
    assert labels.names == ("app", "env", "zone")
    assert labels.values == ("web", "prod", "a")
    assert list(labels) == [Label("app", "web"), Label("env", "prod"), Label("zone", "a")]


def test_empty_labels():
    assert len(Labels.EMPTY) == 0
    assert Labels.of() is Labels.EMPTY
    assert Labels.from_dict({}) is Labels.EMPTY
    assert not Labels.EMPTY


def test_equality_ignores_insertion_order():
    assert Labels.of("a", "1", "b", "2") == Labels.of("b", "2", "a", "1")
    assert hash(Labels.of("a", "1", "b", "2")) == hash(Labels.from_dict({"b": "2", "a": "1"}))


def test_invalid_construction():
    with pytest.raises(InvalidSnapshotError):
        Labels.of("a")
    with pytest.raises(InvalidSnapshotError):
        Labels.of("__name__", "x")
    with pytest.raises(InvalidSnapshotError):
        Labels.of("a", "1", "a", "2")
    with pytest.raises(InvalidSnapshotError):
        Labels.of("a.b", "1", "a_b", "2")
    with pytest.raises(InvalidSnapshotError):
        Labels.from_pairs(["a"], [None])


def test_lookup():
    labels = Labels.of("service.name", "api", "env", "prod")
    assert labels.get("env") == "prod"
    assert labels.get("missing") is None
    assert "service.name" in labels
    assert labels.contains("env")
    assert labels.prometheus_names == ("env", "service_name")
    assert labels.to_dict() == {"env": "prod", "service.name": "api"}


def test_add_returns_new_instance():
    labels = Labels.of("a", "1")
    added = labels.add("b", "2")
    assert labels == Labels.of("a", "1")
    assert added == Labels.of("a", "1", "b", "2")
    with pytest.raises(InvalidSnapshotError):
        added.add("a", "3")


def test_merge_same_value_keeps_one_entry():
    merged = Labels.of("env", "prod", "app", "web").merge(Labels.of("env", "prod", "zone", "eu"))
    assert merged == Labels.of("app", "web", "env", "prod", "zone", "eu")
    assert merged.names.count("env") == 1


def test_merge_conflicting_value_fails():
    with pytest.raises(LabelConflictError) as exc_info:
        Labels.of("env", "prod").merge(Labels.of("env", "staging"))
    assert exc_info.value.name == "env"


def test_merge_colliding_names_fails():
    with pytest.raises(IncompatibleMergeError):
        Labels.of("a.b", "1").merge(Labels.of("a_b", "1"))


def test_merge_with_empty():
    labels = Labels.of("a", "1")
    assert labels.merge(Labels.EMPTY) is labels
    assert Labels.EMPTY.merge(labels) is labels


def test_ordering_is_total():
    a = Labels.of("a", "1")
    a2 = Labels.of("a", "2")
    ab = Labels.of("a", "1", "b", "1")
    b = Labels.of("b", "0")
    assert sorted([b, ab, a2, Labels.EMPTY, a]) == [Labels.EMPTY, a, ab, a2, b]


def test_has_same_names():
    assert Labels.of("a", "1", "b", "2").has_same_names(Labels.of("b", "x", "a", "y"))
    assert not Labels.of("a", "1").has_same_names(Labels.of("b", "1"))


def test_str():
    assert str(Labels.of("b", "2", "a", "1")) == '{a="1", b="2"}'
