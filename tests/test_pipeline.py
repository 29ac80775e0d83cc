"""Tests for the collection pipeline."""
import pytest
from prometheus_client import CollectorRegistry

from promsnap.config import Config, PipelineConfig, PrometheusExporterConfig
from promsnap.data_points import GaugeDataPoint, InfoDataPoint
from promsnap.errors import IncompatibleMergeError, LabelConflictError
from promsnap.exporter import SnapshotExporter
from promsnap.labels import Labels
from promsnap.metadata import MetricMetadata
from promsnap.pipeline import SnapshotPipeline
from promsnap.prom_exporter import PrometheusExporter
from promsnap.snapshots import MetricSnapshot

JVM = MetricMetadata("jvm", "JVM info")


class RecordingExporter(SnapshotExporter):
    name = "recording"

    def __init__(self):
        self.exported = []
        self.stopped = False

    def export(self, snapshots):
        self.exported.append(snapshots)

    def shutdown(self):
        self.stopped = True


class FailingExporter(SnapshotExporter):
    name = "failing"

    def export(self, snapshots):
        raise RuntimeError("endpoint unavailable")


def shard(version):
    return lambda: [MetricSnapshot.info(JVM, [InfoDataPoint(Labels.of("version", version))])]


def test_collect_merges_shards():
    pipeline = SnapshotPipeline(Config(), collectors=[shard("17"), shard("21")], exporters=[])
    snapshots = pipeline.collect()
    assert len(snapshots) == 1
    assert [p.labels.get("version") for p in snapshots.get("jvm").data_points] == ["17", "21"]


def test_collect_applies_prefix_and_constant_labels():
    config = Config(pipeline=PipelineConfig(name_prefix="app_", constant_labels={"instance": "host1"}))
    pipeline = SnapshotPipeline(config, collectors=[shard("17")], exporters=[])
    snapshot = pipeline.collect().get("app_jvm")
    assert snapshot.metadata.help == "JVM info"
    assert snapshot.data_points[0].labels == Labels.of("instance", "host1", "version", "17")


def test_collect_fails_on_incompatible_metadata():
    other = lambda: [MetricSnapshot.info(MetricMetadata("jvm", "different help"), [])]
    pipeline = SnapshotPipeline(Config(), collectors=[shard("17"), other], exporters=[])
    with pytest.raises(IncompatibleMergeError):
        pipeline.collect()


def test_collect_fails_on_label_conflict():
    config = Config(pipeline=PipelineConfig(constant_labels={"version": "99"}))
    pipeline = SnapshotPipeline(config, collectors=[shard("17")], exporters=[])
    with pytest.raises(LabelConflictError):
        pipeline.collect()


def test_run_once_exports_to_all_exporters():
    failing = FailingExporter()
    recording = RecordingExporter()
    pipeline = SnapshotPipeline(Config(), collectors=[shard("17")], exporters=[failing, recording])

    snapshots = pipeline.run_once()

    assert recording.exported == [snapshots]
    assert pipeline.export_errors == {"failing": 1}
    assert pipeline.pass_count == 1


def test_run_once_records_self_metrics():
    registry = CollectorRegistry()
    prom = PrometheusExporter(PrometheusExporterConfig(), registry=registry)
    gauge = lambda: [MetricSnapshot.gauge(MetricMetadata("up"), [GaugeDataPoint(Labels.EMPTY, value=1.0)])]
    pipeline = SnapshotPipeline(Config(), collectors=[gauge, shard("17")], exporters=[prom])

    pipeline.run_once()

    assert registry.get_sample_value("up") == 1.0
    assert registry.get_sample_value("jvm_info", {"version": "17"}) == 1.0
    assert registry.get_sample_value("pipeline_snapshots_total") == 2.0


def test_exporters_created_from_config():
    pipeline = SnapshotPipeline(Config(), collectors=[])
    assert [e.name for e in pipeline.exporters] == ["prometheus"]


def test_stop_shuts_down_exporters():
    recording = RecordingExporter()
    pipeline = SnapshotPipeline(Config(), exporters=[recording])
    pipeline.stop()
    assert recording.stopped
