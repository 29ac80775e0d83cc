"""Exceptions raised by the snapshot model.

Hierarchy:
    SnapshotError (base, ValueError)
    ├── InvalidSnapshotError
    │   └── DuplicateLabelsError
    ├── IncompatibleMergeError
    │   └── LabelConflictError
    └── BuilderReuseError
"""
from typing import Any, Dict, Optional


class SnapshotError(ValueError):
    """Base class for all snapshot model errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = "; ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidSnapshotError(SnapshotError):
    """A name, label, unit or data point failed validation at construction."""


class DuplicateLabelsError(InvalidSnapshotError):
    """The same label set appears on more than one data point of a metric."""

    def __init__(self, metric_name: str, labels: Any):
        super().__init__(
            f"Duplicate labels for metric '{metric_name}': {labels}",
            {"metric": metric_name},
        )
        self.metric_name = metric_name
        self.labels = labels


class IncompatibleMergeError(SnapshotError):
    """Two snapshots (or label sets) cannot be combined."""


class LabelConflictError(IncompatibleMergeError):
    """Both label sets define the same name with different values."""

    def __init__(self, name: str, value: str, other_value: str):
        super().__init__(
            f"Label '{name}' has conflicting values: '{value}' vs '{other_value}'",
            {"label": name},
        )
        self.name = name
        self.value = value
        self.other_value = other_value


class BuilderReuseError(SnapshotError):
    """A builder was used after build() consumed it."""
