"""Metric metadata: name, help and unit."""
from dataclasses import dataclass, field
from typing import Optional

from promsnap.errors import InvalidSnapshotError
from promsnap.naming import prometheus_name as to_prometheus_name
from promsnap.naming import validate_metric_name
from promsnap.units import Unit


@dataclass(frozen=True, eq=False)
class MetricMetadata:
    """
    Immutable metric metadata.

    The name does not include suffixes added by the exposition formats, so a
    counter exposed as "http_requests_total" is named "http_requests" and an
    info metric exposed as "jvm_info" is named "jvm".

    Dots are allowed in the name. Prometheus exposition formats replace them
    with underscores (see prometheus_name), OpenTelemetry keeps them.

    Args:
        name: must pass promsnap.naming.validate_metric_name(). Use
              promsnap.naming.sanitize_metric_name() to convert arbitrary strings.
        help: optional help text.
        unit: optional unit.
    """
    name: str
    help: Optional[str] = None
    unit: Optional[Unit] = None
    prometheus_name: str = field(init=False)

    def __post_init__(self):
        self._validate()
        prom_name = to_prometheus_name(self.name) if "." in self.name else self.name
        object.__setattr__(self, "prometheus_name", prom_name)

    def _validate(self):
        if self.name is None:
            raise InvalidSnapshotError("Missing required field: name is None")
        error = validate_metric_name(self.name)
        if error is not None:
            raise InvalidSnapshotError(
                f"'{self.name}': Illegal metric name. {error} "
                f"Call sanitize_metric_name(name) to avoid this error."
            )
        if self.unit is not None and not isinstance(self.unit, Unit):
            raise InvalidSnapshotError(
                f"'{self.name}': unit must be a Unit, got {type(self.unit).__name__}"
            )

    def get_name(self) -> str:
        return self.name

    def get_prometheus_name(self) -> str:
        return self.prometheus_name

    def has_unit(self) -> bool:
        return self.unit is not None

    def with_name_prefix(self, prefix: str) -> "MetricMetadata":
        """New metadata with the prefix prepended to the name. The result is validated again."""
        return MetricMetadata(prefix + self.name, self.help, self.unit)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, MetricMetadata):
            return NotImplemented
        return (
            self.name == other.name
            and self.prometheus_name == other.prometheus_name
            and self.help == other.help
            and self.unit == other.unit
        )

    # Hashed on prometheus_name only: "a.b" and "a_b" share a bucket but are not equal.
    def __hash__(self) -> int:
        return hash(self.prometheus_name)
