"""
Push exporter interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from periodic_metric_reader.models.core import (
    AggregationTemporality,
    ExportResult,
    InstrumentType,
)


class PushMetricExporter(ABC):
    """
    Abstract base class for exporters driven by a periodic reader.

    Serialization and transport of a batch live entirely in the exporter;
    the reader only hands batches over and looks at the reported result.
    Implementations may be called concurrently when cycles overlap.
    """

    @abstractmethod
    async def export(self, metrics: Any) -> ExportResult:
        """
        Export one collected batch.

        Args:
            metrics: The batch produced by a single collection

        Returns:
            ExportResult with SUCCESS or FAILED and optional error detail
        """
        pass

    @abstractmethod
    async def force_flush(self, timeout_millis: Optional[float] = None) -> bool:
        """Flush anything buffered; returns whether the flush succeeded."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Release exporter resources. Called once by the owning reader."""
        pass

    @abstractmethod
    def select_aggregation_temporality(self, instrument_type: InstrumentType) -> AggregationTemporality:
        """Temporality this exporter wants for the given instrument type."""
        pass
