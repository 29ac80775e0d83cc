"""Naming rules for metric, label and unit names.

Metric names may contain dots. Dots are kept in the canonical name (OpenTelemetry
keeps them) and replaced by underscores in the Prometheus exposition name.
"""
import re
from typing import Optional

from promsnap.errors import InvalidSnapshotError

METRIC_NAME_PATTERN = re.compile(r'^[a-zA-Z_:][a-zA-Z0-9_:.]*\Z')
LABEL_NAME_PATTERN = re.compile(r'^[a-zA-Z_.][a-zA-Z0-9_.]*\Z')
UNIT_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_.:]+\Z')

# Suffixes appended by the exposition formats, so they must not be part of the base name.
RESERVED_METRIC_NAME_SUFFIXES = (
    "_total", "_created", "_bucket", "_info",
    ".total", ".created", ".bucket", ".info",
)

RESERVED_LABEL_NAME_PREFIXES = ("__", "._", "_.", "..")

RESERVED_UNIT_NAMES = ("total", "created", "bucket", "info")


def is_valid_metric_name(name: Optional[str]) -> bool:
    """Check whether a metric name passes validate_metric_name()."""
    return validate_metric_name(name) is None


def validate_metric_name(name: Optional[str]) -> Optional[str]:
    """
    Validate a metric name.

    Returns:
        None if the name is valid, otherwise a description of the problem.
    """
    if not isinstance(name, str):
        return "The metric name must be a string."
    if not name:
        return "The metric name must not be empty."
    for suffix in RESERVED_METRIC_NAME_SUFFIXES:
        if name.endswith(suffix):
            return f"The metric name must not include the '{suffix}' suffix."
    if not METRIC_NAME_PATTERN.match(name):
        return "The metric name contains unsupported characters."
    return None


def prometheus_name(name: str) -> str:
    """Replace dots with underscores, the name used by Prometheus exposition formats."""
    return name.replace(".", "_")


def sanitize_metric_name(metric_name: str) -> str:
    """
    Convert an arbitrary string into a valid metric name.

    Illegal characters become underscores, a leading digit gets an underscore
    prefix, and reserved suffixes like _total are stripped.

    Raises:
        InvalidSnapshotError: if metric_name is empty.
    """
    if not metric_name:
        raise InvalidSnapshotError("Cannot convert an empty string to a valid metric name.")

    sanitized = _replace_illegal_chars(metric_name, METRIC_NAME_PATTERN, first_allowed="a-zA-Z_:")

    modified = True
    while modified:
        modified = False
        for suffix in RESERVED_METRIC_NAME_SUFFIXES:
            if sanitized == suffix:
                # sanitize_metric_name("_total") -> "total"
                return suffix[1:]
            if sanitized.endswith(suffix):
                sanitized = sanitized[:-len(suffix)]
                modified = True
    return sanitized


def is_valid_label_name(name: Optional[str]) -> bool:
    """Check whether a label name passes validate_label_name()."""
    return validate_label_name(name) is None


def validate_label_name(name: Optional[str]) -> Optional[str]:
    """Validate a label name, returning None or a description of the problem."""
    if not isinstance(name, str):
        return "The label name must be a string."
    if not name:
        return "The label name must not be empty."
    if not LABEL_NAME_PATTERN.match(name):
        return "The label name contains unsupported characters."
    for prefix in RESERVED_LABEL_NAME_PREFIXES:
        if name.startswith(prefix):
            return f"Label names starting with '{prefix}' are reserved."
    return None


def sanitize_label_name(label_name: str) -> str:
    """Convert an arbitrary string into a valid label name."""
    if not label_name:
        raise InvalidSnapshotError("Cannot convert an empty string to a valid label name.")

    sanitized = _replace_illegal_chars(label_name, LABEL_NAME_PATTERN, first_allowed="a-zA-Z_.")
    while sanitized.startswith(RESERVED_LABEL_NAME_PREFIXES):
        sanitized = sanitized[1:]
    return sanitized


def is_valid_unit_name(name: Optional[str]) -> bool:
    """Check whether a unit name passes validate_unit_name()."""
    return validate_unit_name(name) is None


def validate_unit_name(name: Optional[str]) -> Optional[str]:
    """Validate a unit name, returning None or a description of the problem."""
    if not isinstance(name, str):
        return "The unit name must be a string."
    if not name:
        return "The unit name must not be empty."
    for reserved in RESERVED_UNIT_NAMES:
        if name == reserved:
            return f"'{name}' is a reserved suffix and cannot be used as a unit."
        if name.endswith("_" + reserved) or name.endswith("." + reserved):
            return f"The unit name must not include the '{reserved}' suffix."
    if not UNIT_NAME_PATTERN.match(name):
        return "The unit name contains unsupported characters."
    return None


def sanitize_unit_name(unit_name: str) -> str:
    """Convert an arbitrary string into a valid unit name."""
    if not unit_name or not unit_name.strip():
        raise InvalidSnapshotError("Cannot convert an empty string to a valid unit name.")

    sanitized = re.sub(r'[^a-zA-Z0-9_.:]', "_", unit_name.strip())

    modified = True
    while modified:
        modified = False
        stripped = sanitized.strip("_.")
        if stripped != sanitized:
            sanitized = stripped
            modified = True
        for reserved in RESERVED_UNIT_NAMES:
            if sanitized == reserved:
                sanitized = ""
                modified = False
                break
            for separator in ("_", "."):
                if sanitized.endswith(separator + reserved):
                    sanitized = sanitized[:-len(reserved) - 1]
                    modified = True

    if not sanitized:
        raise InvalidSnapshotError(
            f"Cannot convert '{unit_name}' to a valid unit name.",
            {"unit": unit_name},
        )
    return sanitized


def _replace_illegal_chars(name: str, pattern: "re.Pattern[str]", first_allowed: str) -> str:
    """Replace characters that do not match the grammar with underscores."""
    if pattern.match(name):
        return name
    first = name[0]
    if re.match(r"[0-9]", first):
        head = "_" + first
    elif re.match(f"[{first_allowed}]", first):
        head = first
    else:
        head = "_"
    # Both grammars share the same tail character class apart from ':'
    tail_class = "a-zA-Z0-9_:." if ":" in first_allowed else "a-zA-Z0-9_."
    tail = re.sub(f"[^{tail_class}]", "_", name[1:])
    return head + tail
