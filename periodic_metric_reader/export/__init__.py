"""
Exporter interfaces and implementations.
"""

from .exporter import PushMetricExporter
from .in_memory import InMemoryMetricExporter

__all__ = [
    "PushMetricExporter",
    "InMemoryMetricExporter",
]
