"""
Metric readers.
"""

from .base import MetricProducer, MetricReader
from .periodic import PeriodicExportingMetricReader, ReaderState

__all__ = [
    "MetricProducer",
    "MetricReader",
    "PeriodicExportingMetricReader",
    "ReaderState",
]
