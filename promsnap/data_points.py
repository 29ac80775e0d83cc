"""Data point snapshots: one measured sample per label set."""
import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional, Tuple, Union

from promsnap.errors import InvalidSnapshotError
from promsnap.labels import Labels


def _check_timestamp(name: str, value: int):
    if value is None or value < 0:
        raise InvalidSnapshotError(
            f"{name} cannot be negative. Use 0 if the data point doesn't have one."
        )


@dataclass(frozen=True)
class Exemplar:
    """A sample observation with its own labels, typically a trace id."""
    value: float
    labels: Labels = Labels.EMPTY
    timestamp_millis: int = 0

    def __post_init__(self):
        if not isinstance(self.labels, Labels):
            raise InvalidSnapshotError("Exemplar labels must be a Labels instance")
        _check_timestamp("Exemplar timestamp", self.timestamp_millis)

    def has_timestamp(self) -> bool:
        return self.timestamp_millis != 0


@dataclass(frozen=True)
class DataPointSnapshot:
    """
    Base class for all data points.

    Timestamps are milliseconds since the epoch; 0 means absent. The scrape
    timestamp is normally set by the server during scraping, so it is only
    useful when mirroring samples that already carry a timestamp.
    """
    labels: Labels = Labels.EMPTY
    created_timestamp_millis: int = 0
    scrape_timestamp_millis: int = 0

    def __post_init__(self):
        if self.labels is None:
            raise InvalidSnapshotError("Labels must not be None. Use Labels.EMPTY if there are no labels.")
        if not isinstance(self.labels, Labels):
            raise InvalidSnapshotError(f"Expected Labels, got {type(self.labels).__name__}")
        _check_timestamp("Created timestamp", self.created_timestamp_millis)
        _check_timestamp("Scrape timestamp", self.scrape_timestamp_millis)

    def has_created_timestamp(self) -> bool:
        return self.created_timestamp_millis != 0

    def has_scrape_timestamp(self) -> bool:
        return self.scrape_timestamp_millis != 0

    def with_labels(self, labels: Labels) -> "DataPointSnapshot":
        """Same data point with a different label set."""
        return replace(self, labels=labels)


@dataclass(frozen=True)
class InfoDataPoint(DataPointSnapshot):
    """Info samples carry labels only. The created timestamp is always 0."""
    created_timestamp_millis: int = field(default=0, init=False)


@dataclass(frozen=True)
class CounterDataPoint(DataPointSnapshot):
    value: float = 0.0
    exemplar: Optional[Exemplar] = None

    def __post_init__(self):
        super().__post_init__()
        if math.isnan(self.value):
            raise InvalidSnapshotError("Counter value cannot be NaN")
        if self.value < 0:
            raise InvalidSnapshotError(f"Counter value cannot be negative: {self.value}")


@dataclass(frozen=True)
class GaugeDataPoint(DataPointSnapshot):
    value: float = 0.0
    exemplar: Optional[Exemplar] = None


@dataclass(frozen=True)
class UnknownDataPoint(DataPointSnapshot):
    value: float = 0.0
    exemplar: Optional[Exemplar] = None


@dataclass(frozen=True)
class ClassicBuckets:
    """
    Classic histogram buckets.

    counts are per bucket, not cumulative. The last upper bound must be +Inf.
    Buckets are sorted by upper bound at construction.
    """
    upper_bounds: Tuple[float, ...]
    counts: Tuple[int, ...]

    def __post_init__(self):
        bounds = tuple(float(b) for b in self.upper_bounds)
        counts = tuple(self.counts)
        if len(bounds) != len(counts):
            raise InvalidSnapshotError(
                f"upper_bounds and counts must have the same length, got {len(bounds)} and {len(counts)}"
            )
        if not bounds:
            raise InvalidSnapshotError("Histogram buckets must include the +Inf bucket")
        if any(math.isnan(b) for b in bounds):
            raise InvalidSnapshotError("Histogram bucket upper bound cannot be NaN")
        if any(c is None or c < 0 for c in counts):
            raise InvalidSnapshotError("Histogram bucket counts cannot be negative")

        pairs = sorted(zip(bounds, counts), key=lambda p: p[0])
        for i in range(len(pairs) - 1):
            if pairs[i][0] == pairs[i + 1][0]:
                raise InvalidSnapshotError(f"Duplicate histogram bucket upper bound {pairs[i][0]}")
        if pairs[-1][0] != math.inf:
            raise InvalidSnapshotError("Histogram buckets must include the +Inf bucket")

        object.__setattr__(self, "upper_bounds", tuple(p[0] for p in pairs))
        object.__setattr__(self, "counts", tuple(p[1] for p in pairs))

    @classmethod
    def of(cls, upper_bounds: Iterable[float], counts: Iterable[int]) -> "ClassicBuckets":
        return cls(tuple(upper_bounds), tuple(counts))

    def __len__(self) -> int:
        return len(self.upper_bounds)

    def cumulative_counts(self) -> Tuple[int, ...]:
        total = 0
        result = []
        for count in self.counts:
            total += count
            result.append(total)
        return tuple(result)

    @property
    def count(self) -> int:
        return sum(self.counts)


@dataclass(frozen=True)
class HistogramDataPoint(DataPointSnapshot):
    buckets: Optional[ClassicBuckets] = None
    sum: Optional[float] = None
    exemplars: Tuple[Exemplar, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        if self.buckets is None:
            raise InvalidSnapshotError("Histogram data point requires buckets")
        object.__setattr__(self, "exemplars", tuple(self.exemplars))

    @property
    def count(self) -> int:
        return self.buckets.count

    def has_sum(self) -> bool:
        return self.sum is not None


@dataclass(frozen=True)
class Quantile:
    quantile: float
    value: float

    def __post_init__(self):
        if math.isnan(self.quantile) or not 0.0 <= self.quantile <= 1.0:
            raise InvalidSnapshotError(f"{self.quantile}: Illegal quantile. Expecting 0 <= quantile <= 1")


@dataclass(frozen=True)
class SummaryDataPoint(DataPointSnapshot):
    count: Optional[int] = None
    sum: Optional[float] = None
    quantiles: Tuple[Quantile, ...] = ()
    exemplars: Tuple[Exemplar, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        if self.count is not None and self.count < 0:
            raise InvalidSnapshotError(f"Summary count cannot be negative: {self.count}")
        quantiles = tuple(sorted(self.quantiles, key=lambda q: q.quantile))
        for i in range(len(quantiles) - 1):
            if quantiles[i].quantile == quantiles[i + 1].quantile:
                raise InvalidSnapshotError(f"Duplicate quantile {quantiles[i].quantile}")
        object.__setattr__(self, "quantiles", quantiles)
        object.__setattr__(self, "exemplars", tuple(self.exemplars))

    def has_count(self) -> bool:
        return self.count is not None

    def has_sum(self) -> bool:
        return self.sum is not None


@dataclass(frozen=True)
class State:
    name: str
    enabled: bool


@dataclass(frozen=True)
class StateSetDataPoint(DataPointSnapshot):
    """A set of named boolean states, sorted by name."""
    states: Tuple[State, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        states: Union[Mapping[str, bool], Iterable[State]] = self.states
        if isinstance(states, Mapping):
            states = [State(name, bool(enabled)) for name, enabled in states.items()]
        states = tuple(sorted(states, key=lambda s: s.name))
        if not states:
            raise InvalidSnapshotError("StateSet data point must have at least one state")
        for i, state in enumerate(states):
            if not state.name:
                raise InvalidSnapshotError("State names must not be empty")
            if i > 0 and states[i - 1].name == state.name:
                raise InvalidSnapshotError(f"Duplicate state name '{state.name}'")
        object.__setattr__(self, "states", states)

    def is_enabled(self, name: str) -> bool:
        for state in self.states:
            if state.name == name:
                return state.enabled
        raise KeyError(name)
