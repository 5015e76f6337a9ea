"""
Periodic Exporting Metric Reader

Collects metrics from a producer on a fixed interval and pushes every batch
to an exporter, with a per-cycle timeout and error routing.
"""

__version__ = "0.1.0"

from .config import ConfigurationError, ReaderConfig, ReaderConfigManager
from .export import InMemoryMetricExporter, PushMetricExporter
from .models import (
    Aggregation,
    AggregationTemporality,
    CollectionResult,
    CycleOutcome,
    CycleStatus,
    ExportResult,
    ExportResultCode,
    InstrumentType,
)
from .reader import MetricProducer, MetricReader, PeriodicExportingMetricReader, ReaderState
from .utils import logging_manager, set_global_error_handler

__all__ = [
    "ConfigurationError",
    "ReaderConfig",
    "ReaderConfigManager",
    "InMemoryMetricExporter",
    "PushMetricExporter",
    "Aggregation",
    "AggregationTemporality",
    "CollectionResult",
    "CycleOutcome",
    "CycleStatus",
    "ExportResult",
    "ExportResultCode",
    "InstrumentType",
    "MetricProducer",
    "MetricReader",
    "PeriodicExportingMetricReader",
    "ReaderState",
    "logging_manager",
    "set_global_error_handler",
]
