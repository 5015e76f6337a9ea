"""
Data models shared by readers, exporters and producers.
"""

from .core import (
    Aggregation,
    AggregationTemporality,
    CollectionResult,
    CycleOutcome,
    CycleStatus,
    ExportResult,
    ExportResultCode,
    InstrumentType,
    default_aggregation_selector,
    default_aggregation_temporality_selector,
)

__all__ = [
    "Aggregation",
    "AggregationTemporality",
    "CollectionResult",
    "CycleOutcome",
    "CycleStatus",
    "ExportResult",
    "ExportResultCode",
    "InstrumentType",
    "default_aggregation_selector",
    "default_aggregation_temporality_selector",
]
