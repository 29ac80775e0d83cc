"""
Builders for data points and metric snapshots.

A builder accumulates fields and hands them to a constructor on build().
build() consumes the builder: any call afterwards raises BuilderReuseError.
Builders are meant to be used by a single collection pass, not shared
between threads.
"""
import dataclasses
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar, Union

from promsnap.errors import BuilderReuseError, InvalidSnapshotError
from promsnap.labels import Labels
from promsnap.metadata import MetricMetadata
from promsnap.units import Unit

T = TypeVar("T")


class Builder(Generic[T]):
    """Accumulate keyword fields, then validate and freeze them via factory(**fields)."""

    def __init__(self, factory: Callable[..., T]):
        self._factory = factory
        self._fields: Dict[str, Any] = {}
        self._consumed = False

    def _check_not_consumed(self):
        if self._consumed:
            raise BuilderReuseError(
                f"Builder for {getattr(self._factory, '__name__', 'snapshot')} was already consumed by build()"
            )

    def set(self, **fields: Any) -> "Builder[T]":
        """Set arbitrary constructor fields, e.g. set(value=3.0)."""
        self._check_not_consumed()
        self._fields.update(fields)
        return self

    def _build_fields(self) -> Dict[str, Any]:
        return dict(self._fields)

    def build(self) -> T:
        self._check_not_consumed()
        self._consumed = True
        return self._factory(**self._build_fields())


class DataPointBuilder(Builder[T]):
    """Builder for any DataPointSnapshot subclass."""

    def __init__(self, factory: Callable[..., T]):
        super().__init__(factory)
        self._labels = Labels.EMPTY
        self._extra_labels: List[Tuple[str, str]] = []

    def _check_fields(self, *names: str):
        if not dataclasses.is_dataclass(self._factory):
            return
        accepted = {f.name for f in dataclasses.fields(self._factory) if f.init}
        for name in names:
            if name not in accepted:
                raise InvalidSnapshotError(
                    f"{self._factory.__name__} has no field '{name}'.",
                    {"field": name},
                )

    def set(self, **fields: Any) -> "DataPointBuilder[T]":
        self._check_not_consumed()
        self._check_fields(*fields)
        self._fields.update(fields)
        return self

    def labels(self, labels: Union[Labels, Mapping[str, str]]) -> "DataPointBuilder[T]":
        self._check_not_consumed()
        self._labels = labels if isinstance(labels, Labels) else Labels.from_dict(labels)
        return self

    def label(self, name: str, value: str) -> "DataPointBuilder[T]":
        self._check_not_consumed()
        self._extra_labels.append((name, value))
        return self

    def created_timestamp_millis(self, millis: int) -> "DataPointBuilder[T]":
        self._check_not_consumed()
        self._check_fields("created_timestamp_millis")
        self._fields["created_timestamp_millis"] = millis
        return self

    def scrape_timestamp_millis(self, millis: int) -> "DataPointBuilder[T]":
        self._check_not_consumed()
        self._check_fields("scrape_timestamp_millis")
        self._fields["scrape_timestamp_millis"] = millis
        return self

    def _build_fields(self) -> Dict[str, Any]:
        fields = super()._build_fields()
        labels = self._labels
        if self._extra_labels:
            extra = Labels.from_pairs(
                [name for name, _ in self._extra_labels],
                [value for _, value in self._extra_labels],
            )
            labels = labels.merge(extra)
        fields["labels"] = labels
        return fields


class SnapshotBuilder(Builder[T]):
    """
    Builder for metric snapshots.

    factory is called as factory(metadata, data_points). When allows_unit is
    False, unit() fails immediately instead of at build time.
    """

    def __init__(self, factory: Callable[..., T], allows_unit: bool = True, kind_name: str = "metric"):
        super().__init__(factory)
        self._allows_unit = allows_unit
        self._kind_name = kind_name
        self._name: Optional[str] = None
        self._help: Optional[str] = None
        self._unit: Optional[Unit] = None
        self._data_points: List[Any] = []

    def name(self, name: str) -> "SnapshotBuilder[T]":
        self._check_not_consumed()
        self._name = name
        return self

    def help(self, help: str) -> "SnapshotBuilder[T]":
        self._check_not_consumed()
        self._help = help
        return self

    def unit(self, unit: Unit) -> "SnapshotBuilder[T]":
        self._check_not_consumed()
        if not self._allows_unit:
            raise InvalidSnapshotError(f"{self._kind_name.capitalize()} metric cannot have a unit.")
        self._unit = unit
        return self

    def data_point(self, data_point: Any) -> "SnapshotBuilder[T]":
        """Add a data point. Call multiple times for adding multiple data points."""
        self._check_not_consumed()
        self._data_points.append(data_point)
        return self

    def build(self) -> T:
        self._check_not_consumed()
        self._consumed = True
        metadata = MetricMetadata(self._name, self._help, self._unit)
        return self._factory(metadata, tuple(self._data_points))
