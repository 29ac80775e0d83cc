"""Immutable label sets."""
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from promsnap.errors import IncompatibleMergeError, InvalidSnapshotError, LabelConflictError
from promsnap.naming import prometheus_name, validate_label_name


@dataclass(frozen=True)
class Label:
    """A single name/value pair."""
    name: str
    value: str


@dataclass(frozen=True)
class Labels:
    """
    Immutable set of label name/value pairs.

    Labels are sorted by their Prometheus name (dots replaced with underscores),
    and names must be unique after that transliteration. Use Labels.EMPTY
    rather than constructing an empty instance.
    """
    names: Tuple[str, ...] = ()
    values: Tuple[str, ...] = ()
    prometheus_names: Tuple[str, ...] = field(default=(), init=False, repr=False, compare=False)

    EMPTY: ClassVar["Labels"]

    def __post_init__(self):
        names = tuple(self.names)
        values = tuple(self.values)
        if len(names) != len(values):
            raise InvalidSnapshotError(
                f"Labels need the same number of names and values, got {len(names)} names and {len(values)} values"
            )

        for name, value in zip(names, values):
            if name is None:
                raise InvalidSnapshotError("Label name must not be None")
            error = validate_label_name(name)
            if error is not None:
                raise InvalidSnapshotError(f"'{name}': Illegal label name. {error}")
            if value is None:
                raise InvalidSnapshotError(f"Label '{name}': value must not be None")
            if not isinstance(value, str):
                raise InvalidSnapshotError(f"Label '{name}': value must be a string, got {type(value).__name__}")

        entries = sorted(zip(names, values), key=lambda e: prometheus_name(e[0]))
        prom_names = tuple(prometheus_name(name) for name, _ in entries)
        for i in range(len(prom_names) - 1):
            if prom_names[i] == prom_names[i + 1]:
                raise InvalidSnapshotError(
                    f"Duplicate label name '{prom_names[i]}'",
                    {"names": f"{entries[i][0]},{entries[i + 1][0]}"},
                )

        object.__setattr__(self, "names", tuple(name for name, _ in entries))
        object.__setattr__(self, "values", tuple(value for _, value in entries))
        object.__setattr__(self, "prometheus_names", prom_names)

    @classmethod
    def of(cls, *keys_and_values: str) -> "Labels":
        """Labels.of("env", "prod", "region", "us")"""
        if len(keys_and_values) % 2 != 0:
            raise InvalidSnapshotError(
                f"Labels.of() needs an even number of arguments, got {len(keys_and_values)}"
            )
        if not keys_and_values:
            return cls.EMPTY
        return cls(tuple(keys_and_values[0::2]), tuple(keys_and_values[1::2]))

    @classmethod
    def from_dict(cls, labels: Optional[Mapping[str, str]]) -> "Labels":
        if not labels:
            return cls.EMPTY
        return cls(tuple(labels.keys()), tuple(labels.values()))

    @classmethod
    def from_pairs(cls, names: Iterable[str], values: Iterable[str]) -> "Labels":
        return cls(tuple(names), tuple(values))

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[Label]:
        for name, value in zip(self.names, self.values):
            yield Label(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def contains(self, name: str) -> bool:
        return name in self.names

    def get(self, name: str) -> Optional[str]:
        """Value for the given label name, or None."""
        for n, v in zip(self.names, self.values):
            if n == name:
                return v
        return None

    def to_dict(self) -> Dict[str, str]:
        return dict(zip(self.names, self.values))

    def has_same_names(self, other: "Labels") -> bool:
        return self.prometheus_names == other.prometheus_names

    def add(self, name: str, value: str) -> "Labels":
        """New Labels with one more entry. The name must not exist yet."""
        if name in self.names:
            raise InvalidSnapshotError(f"Duplicate label name '{name}'")
        return Labels(self.names + (name,), self.values + (value,))

    def merge(self, other: "Labels") -> "Labels":
        """
        Union of both label sets.

        A name defined in both sets with the same value appears once in the result.

        Raises:
            LabelConflictError: if a name is defined in both sets with different values.
            IncompatibleMergeError: if two different names map to the same Prometheus name.
        """
        if not other:
            return self
        if not self:
            return other

        merged: Dict[str, Tuple[str, str]] = {
            prom: (name, value)
            for prom, name, value in zip(self.prometheus_names, self.names, self.values)
        }
        for prom, name, value in zip(other.prometheus_names, other.names, other.values):
            existing = merged.get(prom)
            if existing is None:
                merged[prom] = (name, value)
                continue
            existing_name, existing_value = existing
            if existing_name != name:
                raise IncompatibleMergeError(
                    f"Label names '{existing_name}' and '{name}' collide as '{prom}'"
                )
            if existing_value != value:
                raise LabelConflictError(name, existing_value, value)

        entries = list(merged.values())
        return Labels(tuple(n for n, _ in entries), tuple(v for _, v in entries))

    def sort_key(self) -> Tuple[Tuple[str, str], ...]:
        """Total order over label sets: pairwise by (Prometheus name, value), shorter prefix first."""
        return tuple(zip(self.prometheus_names, self.values))

    def __lt__(self, other: "Labels") -> bool:
        if not isinstance(other, Labels):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        return "{" + ", ".join(f'{n}="{v}"' for n, v in zip(self.names, self.values)) + "}"


Labels.EMPTY = Labels()
