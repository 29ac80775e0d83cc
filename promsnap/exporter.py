"""
Exporter boundary.

Exporters receive finished, immutable MetricSnapshots and own everything that
happens afterwards: choosing between the dotted name and the Prometheus name,
encoding and transport.
"""
from abc import ABC, abstractmethod

from promsnap.snapshots import MetricSnapshots


class SnapshotExporter(ABC):
    """Base class for exporters fed by the snapshot pipeline."""

    name = "exporter"

    @abstractmethod
    def export(self, snapshots: MetricSnapshots) -> None:
        """
        Hand over the result of one collection pass.

        Snapshots are immutable, so an exporter may keep a reference and read it
        from another thread while the next pass builds new snapshots.
        """

    def shutdown(self) -> None:
        """Release resources held by the exporter."""
