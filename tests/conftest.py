"""
Pytest configuration and shared fixtures.
"""

import asyncio
from typing import Any, List, Optional
from unittest.mock import Mock

import pytest

from periodic_metric_reader.export.exporter import PushMetricExporter
from periodic_metric_reader.export.in_memory import InMemoryMetricExporter
from periodic_metric_reader.models.core import (
    AggregationTemporality,
    CollectionResult,
    ExportResult,
    ExportResultCode,
)
from periodic_metric_reader.reader.base import MetricProducer
from periodic_metric_reader.utils.error_handling import (
    get_global_error_handler,
    set_global_error_handler,
)


class FakeMetricProducer(MetricProducer):
    """Producer returning numbered batches, with optional errors and delay."""

    def __init__(self, errors: Optional[List[BaseException]] = None, delay: float = 0.0, events: Optional[list] = None):
        self.errors = errors or []
        self.delay = delay
        self.events = events if events is not None else []
        self.collect_called = 0

    async def collect(self, timeout_millis: Optional[float] = None) -> CollectionResult:
        self.collect_called += 1
        self.events.append("collect")

        if self.delay:
            await asyncio.sleep(self.delay)

        return CollectionResult(
            resource_metrics={"batch": self.collect_called},
            errors=list(self.errors)
        )


@pytest.fixture
def events() -> List[Any]:
    """Shared call log for ordering checks."""
    return []


@pytest.fixture
def producer(events):
    """Fake metric producer."""
    return FakeMetricProducer(events=events)


@pytest.fixture
def in_memory_exporter():
    """In-memory exporter."""
    return InMemoryMetricExporter()


@pytest.fixture
def mock_exporter(events):
    """Mock push exporter that succeeds by default."""
    exporter = Mock(spec=PushMetricExporter)

    def export(metrics):
        events.append("export")
        return ExportResult(ExportResultCode.SUCCESS)

    exporter.export.side_effect = export
    exporter.force_flush.return_value = True
    exporter.shutdown.return_value = None
    exporter.select_aggregation_temporality.return_value = AggregationTemporality.DELTA
    return exporter


@pytest.fixture
def error_sink():
    """Mock error sink."""
    return Mock()


@pytest.fixture
def restore_global_error_handler():
    """Put the original global error handler back after the test."""
    original = get_global_error_handler()
    yield
    set_global_error_handler(original)
