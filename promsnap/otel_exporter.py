"""OpenTelemetry exporter using observable instruments."""
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from opentelemetry.metrics import CallbackOptions, Meter, MeterProvider, Observation
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource

from promsnap.config import OTELExporterConfig
from promsnap.exporter import SnapshotExporter
from promsnap.snapshots import MetricKind, MetricSnapshot, MetricSnapshots

logger = logging.getLogger(__name__)

# No observable histogram exists in the OpenTelemetry API.
UNSUPPORTED_KINDS = (MetricKind.HISTOGRAM, MetricKind.SUMMARY)


class OTELExporter(SnapshotExporter):
    """
    Exposes snapshots as OpenTelemetry observable instruments.

    Instruments use the canonical metric name, so dots are kept. Each instrument
    is registered the first time a snapshot with its name is exported; the
    callbacks read the most recently exported snapshots. Readers (and with them
    the transport) belong to the MeterProvider.
    """

    name = "otel"

    def __init__(
        self,
        config: OTELExporterConfig,
        meter_provider: Optional[MeterProvider] = None,
        metric_readers: Optional[List[MetricReader]] = None,
    ):
        self.config = config
        self._owns_provider = meter_provider is None
        if meter_provider is None:
            resource_attrs = {"service.name": config.meter_name}
            resource_attrs.update(config.resource)
            meter_provider = SDKMeterProvider(
                resource=Resource.create(resource_attrs),
                metric_readers=metric_readers or [],
            )
        self.meter_provider = meter_provider
        self.meter: Meter = meter_provider.get_meter(config.meter_name)

        self._lock = threading.Lock()
        self._latest: Dict[str, MetricSnapshot] = {}
        # instrument name -> metric kind it was registered with
        self.instruments: Dict[str, MetricKind] = {}

        logger.info(f"OTEL exporter initialized with meter '{config.meter_name}'")

    def export(self, snapshots: MetricSnapshots) -> None:
        if self.config.prefix:
            snapshots = snapshots.with_name_prefix(self.config.prefix)

        latest: Dict[str, MetricSnapshot] = {}
        for snapshot in snapshots:
            if snapshot.kind in UNSUPPORTED_KINDS:
                logger.debug(f"Skipping {snapshot.kind.value} '{snapshot.name}': not supported by observable instruments")
                continue
            registered = self.instruments.get(snapshot.name)
            if registered is None:
                try:
                    self._register_instrument(snapshot)
                except Exception as e:
                    logger.warning(f"Skipping '{snapshot.name}': OTEL rejected the instrument: {e}")
                    continue
            elif registered != snapshot.kind:
                logger.warning(
                    f"Instrument '{snapshot.name}' was registered as {registered.value}, "
                    f"ignoring {snapshot.kind.value} snapshot"
                )
                continue
            latest[snapshot.name] = snapshot

        with self._lock:
            self._latest = latest

    def _register_instrument(self, snapshot: MetricSnapshot):
        name = snapshot.name
        description = snapshot.metadata.help or ""
        unit = snapshot.metadata.unit.name if snapshot.metadata.unit else ""
        callback = self._callback(name)

        if snapshot.kind == MetricKind.COUNTER:
            self.meter.create_observable_counter(name, callbacks=[callback], unit=unit, description=description)
        else:
            # Gauges, unknown, info and state sets are all reported as gauge values
            self.meter.create_observable_gauge(name, callbacks=[callback], unit=unit, description=description)

        self.instruments[name] = snapshot.kind
        logger.info(f"Registered OTEL instrument: {name} ({snapshot.kind.value})")

    def _callback(self, name: str) -> Callable[[CallbackOptions], Iterable[Observation]]:
        def callback(options: CallbackOptions) -> Iterable[Observation]:
            with self._lock:
                snapshot = self._latest.get(name)
            if snapshot is None:
                return []
            return observations(snapshot)
        return callback

    def shutdown(self) -> None:
        """Shutdown the meter provider if this exporter created it."""
        with self._lock:
            self._latest = {}
        if self._owns_provider:
            self.meter_provider.shutdown()
            logger.info("OTEL exporter shutdown complete")


def observations(snapshot: MetricSnapshot) -> List[Observation]:
    """Observations for one snapshot. Label names keep their dots as attribute keys."""
    result = []
    for point in snapshot.data_points:
        attributes = point.labels.to_dict()
        if snapshot.kind in (MetricKind.COUNTER, MetricKind.GAUGE, MetricKind.UNKNOWN):
            result.append(Observation(point.value, attributes))
        elif snapshot.kind == MetricKind.INFO:
            result.append(Observation(1, attributes))
        elif snapshot.kind == MetricKind.STATE_SET:
            for state in point.states:
                state_attributes = dict(attributes)
                state_attributes[snapshot.name] = state.name
                result.append(Observation(1 if state.enabled else 0, state_attributes))
    return result
