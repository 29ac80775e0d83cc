"""Collection pass: gather snapshots, merge, relabel and hand them to exporters."""
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from promsnap.config import Config
from promsnap.exporter import SnapshotExporter
from promsnap.otel_exporter import OTELExporter
from promsnap.prom_exporter import PrometheusExporter, SelfMetrics
from promsnap.snapshots import MetricSnapshot, MetricSnapshots

logger = logging.getLogger(__name__)

Collector = Callable[[], Iterable[MetricSnapshot]]


class SnapshotPipeline:
    """
    Runs collectors and feeds the result to exporters.

    Each collector returns the snapshots of one source (a registry, a shard).
    Snapshots sharing a Prometheus name are merged, then the configured name
    prefix and constant labels are applied.
    """

    def __init__(
        self,
        config: Config,
        collectors: Optional[List[Collector]] = None,
        exporters: Optional[List[SnapshotExporter]] = None,
    ):
        self.config = config
        self.collectors: List[Collector] = list(collectors or [])
        self.pass_count = 0
        self.export_errors: Dict[str, int] = {}

        if exporters is None:
            exporters = self._create_exporters()
        self.exporters = exporters

        self.self_metrics = None
        for exporter in self.exporters:
            if isinstance(exporter, PrometheusExporter):
                self.self_metrics = SelfMetrics(
                    registry=exporter.registry,
                    prefix=exporter.config.prefix
                )
                break

        logger.info(
            f"Snapshot pipeline initialized with {len(self.collectors)} collectors "
            f"and {len(self.exporters)} exporters"
        )

    def _create_exporters(self) -> List[SnapshotExporter]:
        exporters: List[SnapshotExporter] = []
        if self.config.exporters.prometheus.enabled:
            exporters.append(PrometheusExporter(self.config.exporters.prometheus))
            logger.info("Prometheus exporter initialized")
        else:
            logger.info("Prometheus exporter disabled")

        if self.config.exporters.otel.enabled:
            exporters.append(OTELExporter(self.config.exporters.otel))
            logger.info("OTEL exporter initialized")
        else:
            logger.info("OTEL exporter disabled")
        return exporters

    def add_collector(self, collector: Collector):
        self.collectors.append(collector)

    def collect(self) -> MetricSnapshots:
        """
        Run all collectors and combine their snapshots.

        Raises:
            SnapshotError: if snapshots of the same name cannot be merged or the
                prefix or constant labels are invalid for a snapshot.
        """
        snapshots: List[MetricSnapshot] = []
        for collector in self.collectors:
            snapshots.extend(collector())

        result = MetricSnapshots.merged(snapshots)

        name_prefix = self.config.pipeline.name_prefix
        if name_prefix:
            result = result.with_name_prefix(name_prefix)

        constant_labels = self.config.pipeline.constant_labels
        if constant_labels:
            result = result.with_labels(constant_labels)

        logger.debug(f"Collected {len(snapshots)} snapshots into {len(result)} metrics")
        return result

    def run_once(self) -> MetricSnapshots:
        """Collect once and export to every exporter. Exporter failures are logged, not raised."""
        pass_start = time.time()
        snapshots = self.collect()

        if self.self_metrics:
            self.self_metrics.record_collect_duration(time.time() - pass_start)

        for exporter in self.exporters:
            try:
                exporter.export(snapshots)
            except Exception as e:
                logger.error(f"Error exporting to {exporter.name}: {e}")
                self.export_errors[exporter.name] = self.export_errors.get(exporter.name, 0) + 1
                if self.self_metrics:
                    self.self_metrics.record_export_error(exporter.name)

        if self.self_metrics:
            self.self_metrics.record_snapshots(len(snapshots))

        self.pass_count += 1
        return snapshots

    def stop(self):
        """Shutdown all exporters."""
        logger.info("Stopping snapshot pipeline")
        for exporter in self.exporters:
            exporter.shutdown()
