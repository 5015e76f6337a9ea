"""
Exporter that keeps exported batches in memory.
"""

import logging
from typing import Any, List, Optional

from periodic_metric_reader.export.exporter import PushMetricExporter
from periodic_metric_reader.models.core import (
    AggregationTemporality,
    ExportResult,
    ExportResultCode,
    InstrumentType,
)

logger = logging.getLogger(__name__)


class InMemoryMetricExporter(PushMetricExporter):
    """
    Push exporter storing every exported batch in a list.

    Useful for tests and for wiring a reader without a backend. Once shut
    down, further exports are refused with a FAILED result.
    """

    def __init__(self, aggregation_temporality: AggregationTemporality = AggregationTemporality.CUMULATIVE):
        self._aggregation_temporality = aggregation_temporality
        self._exported: List[Any] = []
        self._shutdown = False

    async def export(self, metrics: Any) -> ExportResult:
        if self._shutdown:
            logger.warning("Export attempted on a shut down InMemoryMetricExporter")
            return ExportResult(
                ExportResultCode.FAILED,
                RuntimeError("InMemoryMetricExporter is shutdown")
            )

        self._exported.append(metrics)
        return ExportResult(ExportResultCode.SUCCESS)

    async def force_flush(self, timeout_millis: Optional[float] = None) -> bool:
        return True

    async def shutdown(self) -> None:
        self._shutdown = True

    def select_aggregation_temporality(self, instrument_type: InstrumentType) -> AggregationTemporality:
        return self._aggregation_temporality

    def get_metrics(self) -> List[Any]:
        """Return a copy of every batch exported so far."""
        return list(self._exported)

    def reset(self) -> None:
        self._exported.clear()

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown
