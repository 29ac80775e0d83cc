"""Units attached to metric metadata."""
from dataclasses import dataclass

from promsnap.errors import InvalidSnapshotError
from promsnap.naming import validate_unit_name


@dataclass(frozen=True)
class Unit:
    """
    Dimension of a metric, like seconds or bytes.

    The unit name is appended to the metric name by the exposition formats,
    so it has to follow the unit naming rules. Use
    promsnap.naming.sanitize_unit_name() for arbitrary strings.
    """
    name: str

    def __post_init__(self):
        if self.name is None:
            raise InvalidSnapshotError("Missing required field: unit name is None")
        name = self.name.strip()
        error = validate_unit_name(name)
        if error is not None:
            raise InvalidSnapshotError(f"'{self.name}': Illegal unit name. {error}")
        object.__setattr__(self, "name", name)

    def __str__(self) -> str:
        return self.name


RATIO = Unit("ratio")
SECONDS = Unit("seconds")
BYTES = Unit("bytes")
CELSIUS = Unit("celsius")
JOULES = Unit("joules")
GRAMS = Unit("grams")
METERS = Unit("meters")
VOLTS = Unit("volts")
AMPERES = Unit("amperes")


def nanos_to_seconds(nanos: float) -> float:
    return nanos / 1e9


def millis_to_seconds(millis: float) -> float:
    return millis / 1e3


def seconds_to_millis(seconds: float) -> float:
    return seconds * 1e3


def kilobytes_to_bytes(kilobytes: float) -> float:
    return kilobytes * 1024
