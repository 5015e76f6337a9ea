"""
Tests for the base metric reader lifecycle and the in-memory exporter.
"""

import asyncio
from unittest.mock import Mock

import pytest

from periodic_metric_reader.export.in_memory import InMemoryMetricExporter
from periodic_metric_reader.models.core import (
    Aggregation,
    AggregationTemporality,
    ExportResultCode,
    InstrumentType,
)
from periodic_metric_reader.reader.base import MetricReader
from periodic_metric_reader.utils.error_classification import ExportTimeoutError


class RecordingReader(MetricReader):
    """Minimal reader recording lifecycle hook calls."""

    def __init__(self, shutdown_delay: float = 0.0, flush_result=True):
        super().__init__()
        self.shutdown_delay = shutdown_delay
        self.flush_result = flush_result
        self.initialized = 0
        self.flushed = 0
        self.shutdowns = 0

    def on_initialized(self) -> None:
        self.initialized += 1

    async def on_force_flush(self):
        self.flushed += 1
        return self.flush_result

    async def on_shutdown(self) -> None:
        self.shutdowns += 1
        if self.shutdown_delay:
            await asyncio.sleep(self.shutdown_delay)


class TestMetricReader:
    """Test cases for MetricReader."""

    def test_bind_calls_on_initialized(self, producer):
        """Test binding activates the reader."""
        reader = RecordingReader()

        reader.set_metric_producer(producer)

        assert reader.initialized == 1

    def test_bind_twice(self, producer):
        """Test a reader can only be bound once."""
        reader = RecordingReader()
        reader.set_metric_producer(producer)

        with pytest.raises(RuntimeError, match="can not be bound to a MetricProducer again"):
            reader.set_metric_producer(producer)

        assert reader.initialized == 1

    def test_failed_initialization_unbinds(self, producer):
        """Test a reader whose start fails can be bound again."""
        reader = RecordingReader()
        reader.on_initialized = Mock(side_effect=[RuntimeError("no running event loop"), None])

        with pytest.raises(RuntimeError, match="no running event loop"):
            reader.set_metric_producer(producer)

        reader.set_metric_producer(producer)

        assert reader.on_initialized.call_count == 2
        with pytest.raises(RuntimeError, match="can not be bound to a MetricProducer again"):
            reader.set_metric_producer(producer)

    def test_default_selectors(self):
        """Test default aggregation and temporality."""
        reader = RecordingReader()

        assert reader.select_aggregation(InstrumentType.HISTOGRAM) == Aggregation.DEFAULT
        assert reader.select_aggregation_temporality(InstrumentType.COUNTER) == AggregationTemporality.CUMULATIVE

    @pytest.mark.asyncio
    async def test_collect_unbound(self):
        """Test collecting without a producer."""
        reader = RecordingReader()

        with pytest.raises(RuntimeError, match="not bound to a MetricProducer"):
            await reader.collect()

    @pytest.mark.asyncio
    async def test_collect(self, producer):
        """Test collecting from the bound producer."""
        reader = RecordingReader()
        reader.set_metric_producer(producer)

        result = await reader.collect()

        assert result.resource_metrics == {"batch": 1}
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_collect_after_shutdown(self, producer):
        """Test collecting from a shut down reader."""
        reader = RecordingReader()
        reader.set_metric_producer(producer)
        await reader.shutdown()

        with pytest.raises(RuntimeError, match="MetricReader is shutdown"):
            await reader.collect()

        assert producer.collect_called == 0

    @pytest.mark.asyncio
    async def test_shutdown_once(self, caplog):
        """Test repeated shutdown calls run the hook once."""
        reader = RecordingReader()

        await reader.shutdown()
        await reader.shutdown()

        assert reader.shutdowns == 1
        assert reader.is_shutdown
        assert "Cannot call shutdown twice" in caplog.text

    @pytest.mark.asyncio
    async def test_concurrent_shutdown(self):
        """Test concurrent shutdown calls run the hook once."""
        reader = RecordingReader(shutdown_delay=0.05)

        await asyncio.gather(reader.shutdown(), reader.shutdown())

        assert reader.shutdowns == 1

    @pytest.mark.asyncio
    async def test_shutdown_timeout(self):
        """Test a shutdown deadline."""
        reader = RecordingReader(shutdown_delay=0.2)

        with pytest.raises(ExportTimeoutError):
            await reader.shutdown(timeout_millis=20)

        assert reader.is_shutdown
        await asyncio.sleep(0.25)

    @pytest.mark.asyncio
    async def test_force_flush(self):
        """Test force flush returns the hook result."""
        reader = RecordingReader(flush_result=False)

        assert await reader.force_flush() is False
        assert await reader.force_flush(timeout_millis=500) is False
        assert reader.flushed == 2

    @pytest.mark.asyncio
    async def test_force_flush_after_shutdown(self, caplog):
        """Test force flush is refused after shutdown."""
        reader = RecordingReader()
        await reader.shutdown()

        assert await reader.force_flush() is False
        assert reader.flushed == 0
        assert "after shutdown" in caplog.text


class TestInMemoryMetricExporter:
    """Test cases for InMemoryMetricExporter."""

    @pytest.mark.asyncio
    async def test_export(self, in_memory_exporter):
        """Test exported batches are kept in order."""
        await in_memory_exporter.export({"batch": 1})
        result = await in_memory_exporter.export({"batch": 2})

        assert result.success
        assert in_memory_exporter.get_metrics() == [{"batch": 1}, {"batch": 2}]

    @pytest.mark.asyncio
    async def test_export_after_shutdown(self, in_memory_exporter):
        """Test exports are refused after shutdown."""
        await in_memory_exporter.shutdown()

        result = await in_memory_exporter.export({"batch": 1})

        assert result.code == ExportResultCode.FAILED
        assert isinstance(result.error, RuntimeError)
        assert in_memory_exporter.get_metrics() == []
        assert in_memory_exporter.is_shutdown

    @pytest.mark.asyncio
    async def test_reset(self, in_memory_exporter):
        """Test clearing stored batches."""
        await in_memory_exporter.export({"batch": 1})

        in_memory_exporter.reset()

        assert in_memory_exporter.get_metrics() == []
        assert await in_memory_exporter.force_flush() is True

    def test_temporality(self):
        """Test the configured temporality is reported."""
        exporter = InMemoryMetricExporter(AggregationTemporality.DELTA)

        assert exporter.select_aggregation_temporality(InstrumentType.COUNTER) == AggregationTemporality.DELTA
