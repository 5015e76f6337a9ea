"""
Base metric reader interface and lifecycle handling.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from periodic_metric_reader.models.core import (
    Aggregation,
    AggregationTemporality,
    CollectionResult,
    InstrumentType,
    default_aggregation_selector,
    default_aggregation_temporality_selector,
)
from periodic_metric_reader.utils.timeout import call_with_timeout

logger = logging.getLogger(__name__)


class MetricProducer(ABC):
    """Produces point-in-time metric batches for a reader."""

    @abstractmethod
    async def collect(self, timeout_millis: Optional[float] = None) -> CollectionResult:
        """
        Collect the current metrics batch.

        Args:
            timeout_millis: Optional hint for how long collection may take

        Returns:
            CollectionResult with the batch and any non-fatal collection errors
        """
        pass


class MetricReader(ABC):
    """
    Abstract base class for metric readers.

    Owns the reader lifecycle: binding to a producer triggers
    ``on_initialized``, and ``force_flush``/``shutdown`` call into
    ``on_force_flush``/``on_shutdown``. Shutdown happens at most once; later
    calls are logged and ignored.
    """

    def __init__(self):
        self._metric_producer: Optional[MetricProducer] = None
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def set_metric_producer(self, metric_producer: MetricProducer) -> None:
        """
        Bind the reader to its producer and activate it.

        Raises:
            RuntimeError: If the reader is already bound
        """
        if self._metric_producer is not None:
            raise RuntimeError("MetricReader can not be bound to a MetricProducer again")

        self._metric_producer = metric_producer
        try:
            self.on_initialized()
        except Exception:
            # Left unbound so the caller can retry.
            self._metric_producer = None
            raise

    def select_aggregation(self, instrument_type: InstrumentType) -> Aggregation:
        return default_aggregation_selector(instrument_type)

    def select_aggregation_temporality(self, instrument_type: InstrumentType) -> AggregationTemporality:
        return default_aggregation_temporality_selector(instrument_type)

    async def collect(self, timeout_millis: Optional[float] = None) -> CollectionResult:
        """
        Collect a batch from the bound producer.

        Raises:
            RuntimeError: If the reader is unbound or already shut down
        """
        if self._metric_producer is None:
            raise RuntimeError("MetricReader is not bound to a MetricProducer")

        if self._shutdown:
            raise RuntimeError("MetricReader is shutdown")

        return await self._metric_producer.collect(timeout_millis=timeout_millis)

    async def shutdown(self, timeout_millis: Optional[float] = None) -> None:
        """
        Shut the reader down.

        Args:
            timeout_millis: Optional deadline for the reader's own shutdown work

        Raises:
            ExportTimeoutError: If the deadline elapsed first
            Exception: Whatever ``on_shutdown`` raised
        """
        if self._shutdown:
            logger.warning(f"Cannot call shutdown twice on {self.__class__.__name__}")
            return

        # Flagged before awaiting so concurrent calls see it too.
        self._shutdown = True

        if timeout_millis is None:
            await self.on_shutdown()
        else:
            await call_with_timeout(self.on_shutdown(), timeout_millis)

    async def force_flush(self, timeout_millis: Optional[float] = None) -> Any:
        """
        Flush the reader.

        Args:
            timeout_millis: Optional deadline for the flush

        Returns:
            Result of ``on_force_flush``, or False if the reader is shut down
        """
        if self._shutdown:
            logger.warning(f"Cannot force flush {self.__class__.__name__} after shutdown")
            return False

        if timeout_millis is None:
            return await self.on_force_flush()

        return await call_with_timeout(self.on_force_flush(), timeout_millis)

    @abstractmethod
    def on_initialized(self) -> None:
        """Called once the reader has been bound to its producer."""
        pass

    @abstractmethod
    async def on_force_flush(self) -> Any:
        pass

    @abstractmethod
    async def on_shutdown(self) -> None:
        pass
