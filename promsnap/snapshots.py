"""
Metric snapshots.

A MetricSnapshot is one metric's metadata plus its data points, all of one
kind. Snapshots are immutable: merge(), with_labels() and with_name_prefix()
return new instances.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Tuple, Type, Union

from promsnap.builders import DataPointBuilder, SnapshotBuilder
from promsnap.data_points import (
    CounterDataPoint,
    DataPointSnapshot,
    GaugeDataPoint,
    HistogramDataPoint,
    InfoDataPoint,
    StateSetDataPoint,
    SummaryDataPoint,
    UnknownDataPoint,
)
from promsnap.errors import IncompatibleMergeError, InvalidSnapshotError
from promsnap.labels import Labels
from promsnap.metadata import MetricMetadata

logger = logging.getLogger(__name__)


class MetricKind(str, Enum):
    INFO = "info"
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"
    STATE_SET = "stateset"
    UNKNOWN = "unknown"


class KindRule(NamedTuple):
    point_type: Type[DataPointSnapshot]
    allows_unit: bool


KIND_RULES: Dict[MetricKind, KindRule] = {
    MetricKind.INFO: KindRule(InfoDataPoint, allows_unit=False),
    MetricKind.COUNTER: KindRule(CounterDataPoint, allows_unit=True),
    MetricKind.GAUGE: KindRule(GaugeDataPoint, allows_unit=True),
    MetricKind.HISTOGRAM: KindRule(HistogramDataPoint, allows_unit=True),
    MetricKind.SUMMARY: KindRule(SummaryDataPoint, allows_unit=True),
    MetricKind.STATE_SET: KindRule(StateSetDataPoint, allows_unit=False),
    MetricKind.UNKNOWN: KindRule(UnknownDataPoint, allows_unit=True),
}


def _point_sort_key(point: DataPointSnapshot):
    # Points sharing a label set are ordered by their remaining fields
    return (
        point.labels.sort_key(),
        point.scrape_timestamp_millis,
        point.created_timestamp_millis,
        repr(point),
    )


def _sorted_points(data_points: Iterable[DataPointSnapshot]) -> Tuple[DataPointSnapshot, ...]:
    return tuple(sorted(data_points, key=_point_sort_key))


@dataclass(frozen=True)
class MetricSnapshot:
    """
    Immutable snapshot of one metric.

    Args:
        kind: the metric type. Decides which data point class is accepted and
              whether the metadata may have a unit.
        metadata: name without the suffixes added by exposition formats
                  (no _total, no _info).
        data_points: a sorted copy is stored, ordered by labels.
    """
    kind: MetricKind
    metadata: MetricMetadata
    data_points: Tuple[DataPointSnapshot, ...] = ()

    def __post_init__(self):
        try:
            kind = MetricKind(self.kind)
        except ValueError:
            raise InvalidSnapshotError(f"Unknown metric kind: {self.kind}")
        rule = KIND_RULES[kind]

        if self.metadata is None:
            raise InvalidSnapshotError("Missing required field: metadata is None")
        if self.data_points is None:
            raise InvalidSnapshotError("Missing required field: data_points is None")
        if self.metadata.has_unit() and not rule.allows_unit:
            raise InvalidSnapshotError(f"{kind.value.capitalize()} metric cannot have a unit.")

        for point in self.data_points:
            if not isinstance(point, rule.point_type):
                raise InvalidSnapshotError(
                    f"{kind.value} metric '{self.metadata.name}' cannot hold {type(point).__name__}",
                    {"expected": rule.point_type.__name__},
                )

        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "data_points", _sorted_points(self.data_points))

    @classmethod
    def info(cls, metadata: MetricMetadata, data_points: Iterable[InfoDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.INFO, metadata, tuple(data_points))

    @classmethod
    def counter(cls, metadata: MetricMetadata, data_points: Iterable[CounterDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.COUNTER, metadata, tuple(data_points))

    @classmethod
    def gauge(cls, metadata: MetricMetadata, data_points: Iterable[GaugeDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.GAUGE, metadata, tuple(data_points))

    @classmethod
    def histogram(cls, metadata: MetricMetadata, data_points: Iterable[HistogramDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.HISTOGRAM, metadata, tuple(data_points))

    @classmethod
    def summary(cls, metadata: MetricMetadata, data_points: Iterable[SummaryDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.SUMMARY, metadata, tuple(data_points))

    @classmethod
    def state_set(cls, metadata: MetricMetadata, data_points: Iterable[StateSetDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.STATE_SET, metadata, tuple(data_points))

    @classmethod
    def unknown(cls, metadata: MetricMetadata, data_points: Iterable[UnknownDataPoint] = ()) -> "MetricSnapshot":
        return cls(MetricKind.UNKNOWN, metadata, tuple(data_points))

    @staticmethod
    def builder(kind: MetricKind) -> SnapshotBuilder["MetricSnapshot"]:
        """Builder for a snapshot of the given kind. See SnapshotBuilder."""
        kind = MetricKind(kind)
        return SnapshotBuilder(
            partial(MetricSnapshot, kind),
            allows_unit=KIND_RULES[kind].allows_unit,
            kind_name=kind.value,
        )

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def prometheus_name(self) -> str:
        return self.metadata.prometheus_name

    def merge(self, other: "MetricSnapshot") -> "MetricSnapshot":
        """
        Combine the data points of two snapshots of the same metric.

        Data points are concatenated and sorted again. Duplicate label sets are
        kept; whether they are an error is decided at exposition time.

        Raises:
            IncompatibleMergeError: if the metadata differs (including help and
                unit) or the snapshots are of different kinds.
        """
        if not isinstance(other, MetricSnapshot):
            raise IncompatibleMergeError("Unable to merge - invalid snapshot type")
        if self.metadata != other.metadata:
            raise IncompatibleMergeError(
                "Unable to merge - metadata mismatch.",
                {"metric": self.metadata.name},
            )
        if self.kind != other.kind:
            raise IncompatibleMergeError(
                "Unable to merge - invalid snapshot type",
                {"kind": self.kind.value, "other_kind": other.kind.value},
            )
        logger.debug(
            f"Merging {len(other.data_points)} data points into {self.kind.value} "
            f"'{self.metadata.name}' ({len(self.data_points)} data points)"
        )
        return MetricSnapshot(self.kind, self.metadata, self.data_points + other.data_points)

    def with_name_prefix(self, prefix: str) -> "MetricSnapshot":
        return MetricSnapshot(self.kind, self.metadata.with_name_prefix(prefix), self.data_points)

    def with_labels(self, labels: Union[Labels, Mapping[str, str]]) -> "MetricSnapshot":
        """
        Merge additional labels into every data point.

        Raises:
            LabelConflictError: if a data point already has one of the labels
                with a different value.
        """
        extra = labels if isinstance(labels, Labels) else Labels.from_dict(labels)
        points = [point.with_labels(point.labels.merge(extra)) for point in self.data_points]
        return MetricSnapshot(self.kind, self.metadata, tuple(points))

    def duplicate_labels(self) -> List[Labels]:
        """Label sets used by more than one data point."""
        duplicates: List[Labels] = []
        for previous, current in zip(self.data_points, self.data_points[1:]):
            if previous.labels == current.labels and (not duplicates or duplicates[-1] != current.labels):
                duplicates.append(current.labels)
        return duplicates


def data_point_builder(kind: MetricKind) -> DataPointBuilder:
    """Builder for a data point of the given kind, e.g. data_point_builder(MetricKind.COUNTER).set(value=1)."""
    return DataPointBuilder(KIND_RULES[MetricKind(kind)].point_type)


def info_builder() -> SnapshotBuilder[MetricSnapshot]:
    return MetricSnapshot.builder(MetricKind.INFO)


def counter_builder() -> SnapshotBuilder[MetricSnapshot]:
    return MetricSnapshot.builder(MetricKind.COUNTER)


def gauge_builder() -> SnapshotBuilder[MetricSnapshot]:
    return MetricSnapshot.builder(MetricKind.GAUGE)


@dataclass(frozen=True)
class MetricSnapshots:
    """Immutable collection of snapshots, sorted by Prometheus name, names unique."""
    snapshots: Tuple[MetricSnapshot, ...] = ()

    def __post_init__(self):
        snapshots = tuple(sorted(self.snapshots, key=lambda s: s.prometheus_name))
        for previous, current in zip(snapshots, snapshots[1:]):
            if previous.prometheus_name == current.prometheus_name:
                raise InvalidSnapshotError(
                    f"Duplicate metric name '{current.prometheus_name}'. "
                    f"Use MetricSnapshots.merged() to combine snapshots of the same metric."
                )
        object.__setattr__(self, "snapshots", snapshots)

    @classmethod
    def of(cls, *snapshots: MetricSnapshot) -> "MetricSnapshots":
        return cls(tuple(snapshots))

    @classmethod
    def merged(cls, snapshots: Iterable[MetricSnapshot]) -> "MetricSnapshots":
        """Collection where snapshots sharing a Prometheus name are merged into one."""
        by_name: Dict[str, MetricSnapshot] = {}
        for snapshot in snapshots:
            existing = by_name.get(snapshot.prometheus_name)
            by_name[snapshot.prometheus_name] = snapshot if existing is None else existing.merge(snapshot)
        return cls(tuple(by_name.values()))

    def __iter__(self) -> Iterator[MetricSnapshot]:
        return iter(self.snapshots)

    def __len__(self) -> int:
        return len(self.snapshots)

    def get(self, prometheus_name: str) -> Optional[MetricSnapshot]:
        for snapshot in self.snapshots:
            if snapshot.prometheus_name == prometheus_name:
                return snapshot
        return None

    def with_name_prefix(self, prefix: str) -> "MetricSnapshots":
        return MetricSnapshots(tuple(s.with_name_prefix(prefix) for s in self.snapshots))

    def with_labels(self, labels: Union[Labels, Mapping[str, str]]) -> "MetricSnapshots":
        return MetricSnapshots(tuple(s.with_labels(labels) for s in self.snapshots))
