"""Prometheus exporter using a prometheus_client custom collector."""
import logging
import threading
from typing import Dict, Iterator, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.metrics_core import Metric
from prometheus_client.samples import Exemplar as PromExemplar
from prometheus_client.utils import floatToGoString

from promsnap.config import PrometheusExporterConfig
from promsnap.data_points import DataPointSnapshot, Exemplar
from promsnap.errors import DuplicateLabelsError
from promsnap.exporter import SnapshotExporter
from promsnap.labels import Labels
from promsnap.snapshots import MetricKind, MetricSnapshot, MetricSnapshots

logger = logging.getLogger(__name__)


def _label_dict(labels: Labels) -> Dict[str, str]:
    return dict(zip(labels.prometheus_names, labels.values))


def _timestamp(millis: int) -> Optional[float]:
    return millis / 1000.0 if millis else None


def _exemplar(exemplar: Optional[Exemplar]) -> Optional[PromExemplar]:
    if exemplar is None:
        return None
    return PromExemplar(_label_dict(exemplar.labels), exemplar.value, _timestamp(exemplar.timestamp_millis))


def _add_created(family: Metric, point: DataPointSnapshot, labels: Dict[str, str]):
    if point.has_created_timestamp():
        family.add_sample(
            f"{family.name}_created", labels, point.created_timestamp_millis / 1000.0,
            _timestamp(point.scrape_timestamp_millis),
        )


def to_metric_family(snapshot: MetricSnapshot) -> Metric:
    """Convert a snapshot into a prometheus_client metric family, using the Prometheus name."""
    metadata = snapshot.metadata
    unit = metadata.unit.name if metadata.unit else ""
    family = Metric(metadata.prometheus_name, metadata.help or "", snapshot.kind.value, unit)
    name = family.name

    for point in snapshot.data_points:
        labels = _label_dict(point.labels)
        timestamp = _timestamp(point.scrape_timestamp_millis)

        if snapshot.kind == MetricKind.COUNTER:
            family.add_sample(f"{name}_total", labels, point.value, timestamp, _exemplar(point.exemplar))
            _add_created(family, point, labels)

        elif snapshot.kind in (MetricKind.GAUGE, MetricKind.UNKNOWN):
            family.add_sample(name, labels, point.value, timestamp, _exemplar(point.exemplar))

        elif snapshot.kind == MetricKind.INFO:
            family.add_sample(f"{name}_info", labels, 1.0, timestamp)

        elif snapshot.kind == MetricKind.STATE_SET:
            for state in point.states:
                state_labels = dict(labels)
                state_labels[name] = state.name
                family.add_sample(name, state_labels, 1.0 if state.enabled else 0.0, timestamp)

        elif snapshot.kind == MetricKind.HISTOGRAM:
            for bound, count in zip(point.buckets.upper_bounds, point.buckets.cumulative_counts()):
                bucket_labels = dict(labels)
                bucket_labels["le"] = floatToGoString(bound)
                family.add_sample(f"{name}_bucket", bucket_labels, count, timestamp)
            family.add_sample(f"{name}_count", labels, point.count, timestamp)
            if point.has_sum():
                family.add_sample(f"{name}_sum", labels, point.sum, timestamp)
            _add_created(family, point, labels)

        elif snapshot.kind == MetricKind.SUMMARY:
            for quantile in point.quantiles:
                quantile_labels = dict(labels)
                quantile_labels["quantile"] = floatToGoString(quantile.quantile)
                family.add_sample(name, quantile_labels, quantile.value, timestamp)
            if point.has_count():
                family.add_sample(f"{name}_count", labels, point.count, timestamp)
            if point.has_sum():
                family.add_sample(f"{name}_sum", labels, point.sum, timestamp)
            _add_created(family, point, labels)

    return family


class SnapshotCollector:
    """prometheus_client collector exposing the last exported snapshots."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots = MetricSnapshots()

    def update(self, snapshots: MetricSnapshots):
        with self._lock:
            self._snapshots = snapshots

    def describe(self) -> List[Metric]:
        return []

    def collect(self) -> Iterator[Metric]:
        with self._lock:
            snapshots = self._snapshots
        for snapshot in snapshots:
            yield to_metric_family(snapshot)


class PrometheusExporter(SnapshotExporter):
    """Exposes snapshots on a prometheus_client registry."""

    name = "prometheus"

    def __init__(self, config: PrometheusExporterConfig, registry: Optional[CollectorRegistry] = None):
        self.config = config
        # Use a custom registry to avoid exporting default Python/process metrics
        self.registry = registry if registry is not None else CollectorRegistry()
        self.collector = SnapshotCollector()
        self.registry.register(self.collector)
        logger.info(f"Registered snapshot collector (prefix: '{config.prefix}')")

    def export(self, snapshots: MetricSnapshots) -> None:
        """
        Replace the exposed snapshots.

        Raises:
            DuplicateLabelsError: if a snapshot has two data points with the
                same labels. The previously exported snapshots stay exposed.
        """
        if self.config.prefix:
            snapshots = snapshots.with_name_prefix(self.config.prefix)
        for snapshot in snapshots:
            duplicates = snapshot.duplicate_labels()
            if duplicates:
                raise DuplicateLabelsError(snapshot.prometheus_name, duplicates[0])
        self.collector.update(snapshots)
        logger.debug(f"Exposing {len(snapshots)} snapshots")

    def shutdown(self) -> None:
        self.registry.unregister(self.collector)
        logger.info("Prometheus snapshot collector unregistered")


class SelfMetrics:
    """Self-monitoring metrics for the snapshot pipeline."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()

        self.snapshots_total = Counter(
            f"{prefix}pipeline_snapshots_total",
            "Total number of metric snapshots handed to exporters",
            registry=registry
        )

        self.export_errors_total = Counter(
            f"{prefix}pipeline_export_errors_total",
            "Total number of export errors",
            ["exporter"],
            registry=registry
        )

        self.collect_duration_seconds = Histogram(
            f"{prefix}pipeline_collect_duration_seconds",
            "Duration of each collection pass in seconds",
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=registry
        )

    def record_snapshots(self, count: int):
        self.snapshots_total.inc(count)

    def record_export_error(self, exporter: str):
        self.export_errors_total.labels(exporter=exporter).inc()

    def record_collect_duration(self, duration: float):
        self.collect_duration_seconds.observe(duration)
