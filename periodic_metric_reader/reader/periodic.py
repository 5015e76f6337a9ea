"""
Metric reader that collects and exports on a fixed interval.
"""

import asyncio
import itertools
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from periodic_metric_reader.config.models import AggregationSelector, Millis
from periodic_metric_reader.config.validation import validate_reader_options
from periodic_metric_reader.export.exporter import PushMetricExporter
from periodic_metric_reader.models.core import (
    Aggregation,
    AggregationTemporality,
    CycleOutcome,
    CycleStatus,
    InstrumentType,
)
from periodic_metric_reader.reader.base import MetricReader
from periodic_metric_reader.utils.error_classification import ExportError, ExportTimeoutError
from periodic_metric_reader.utils.error_handling import CycleErrorRouter, ErrorSink
from periodic_metric_reader.utils.structured_logging import (
    LogContext,
    get_logger,
    with_correlation_id,
)
from periodic_metric_reader.utils.timeout import call_with_timeout

EXPORT_JOB_ID = "periodic_export"


class ReaderState(Enum):
    """Reader lifecycle state."""
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


class PeriodicExportingMetricReader(MetricReader):
    """
    Reader that collects metrics and pushes them to an exporter every interval.

    Once bound to a producer, an APScheduler interval job fires every
    ``export_interval_millis``. Each tick starts one collect-then-export
    cycle as its own task, bounded by ``export_timeout_millis``. A cycle
    that fails or times out is logged or handed to the error sink and never
    stops the next tick.

    Ticks are not gated on earlier cycles. The timeout only abandons the
    wait, so an exporter that keeps running past its deadline can still be
    busy when the next tick calls it again; exporters must tolerate
    concurrent calls.
    """

    def __init__(
        self,
        exporter: PushMetricExporter,
        aggregation_selector: Optional[AggregationSelector] = None,
        export_interval_millis: Optional[Millis] = None,
        export_timeout_millis: Optional[Millis] = None,
        error_sink: Optional[ErrorSink] = None,
        name: Optional[str] = None
    ):
        """
        Initialize the reader.

        Args:
            exporter: Push exporter receiving every collected batch
            aggregation_selector: Instrument type to aggregation selector
            export_interval_millis: Milliseconds between ticks (default 60000)
            export_timeout_millis: Milliseconds a cycle may take (default 30000)
            error_sink: Receives export and unexpected failures, defaults to
                the process-wide global error handler
            name: Name identifying the reader in logs and status

        Raises:
            ConfigurationError: If the options are invalid
        """
        super().__init__()
        self.config = validate_reader_options(
            exporter=exporter,
            aggregation_selector=aggregation_selector,
            export_interval_millis=export_interval_millis,
            export_timeout_millis=export_timeout_millis
        )
        self.name = name or self.__class__.__name__

        self._exporter = self.config.exporter
        self._state = ReaderState.UNINITIALIZED
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._inflight_cycles: Set[asyncio.Task] = set()
        self._cycle_ids = itertools.count(1)
        self._error_router = CycleErrorRouter(
            reader_name=self.name,
            timeout_millis=self.config.export_timeout_millis,
            error_sink=error_sink
        )

        # Cycle statistics
        self.cycles_started = 0
        self.outcome_counts: Dict[str, int] = {
            status.value: 0 for status in CycleStatus if status != CycleStatus.PENDING
        }
        self.last_run: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.last_status: Optional[CycleStatus] = None

        self.logger = get_logger(
            f"{__name__}.{self.__class__.__name__}",
            LogContext(
                reader_name=self.name,
                exporter=type(self._exporter).__name__,
                additional_fields={
                    "export_interval_millis": self.config.export_interval_millis,
                    "export_timeout_millis": self.config.export_timeout_millis
                }
            )
        )

    @property
    def state(self) -> ReaderState:
        return self._state

    def on_initialized(self) -> None:
        """
        Enter RUNNING and start the interval timer.

        Must be called from within the running event loop that should drive
        the ticks. The timer is a loop callback only: it never keeps the
        process alive once the loop's own work is done.
        """
        if self._state != ReaderState.UNINITIALIZED:
            self.logger.warning(f"Reader cannot start from state: {self._state.value}")
            return

        self._scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(),
            timezone="UTC"
        )
        self._scheduler.add_job(
            func=self._tick,
            trigger=IntervalTrigger(
                seconds=self.config.export_interval_seconds,
                timezone="UTC"
            ),
            id=EXPORT_JOB_ID,
            name=f"Periodic export: {self.name}",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None
        )
        self._scheduler.start()
        self._state = ReaderState.RUNNING

        self.logger.info(
            f"Periodic export started every {self.config.export_interval_millis} ms "
            f"with a {self.config.export_timeout_millis} ms timeout"
        )

    async def _tick(self) -> None:
        """Launch one cycle without waiting for it to finish."""
        task = asyncio.create_task(self._run_cycle(), name=f"{self.name}.cycle")
        self._inflight_cycles.add(task)
        task.add_done_callback(self._inflight_cycles.discard)

    @with_correlation_id()
    async def _run_cycle(self) -> CycleOutcome:
        """
        Run one cycle under the export timeout and route its outcome.

        Returns:
            The routed CycleOutcome
        """
        outcome = CycleOutcome(cycle_id=next(self._cycle_ids), started_at=datetime.now())
        self.cycles_started += 1
        self.last_run = outcome.started_at

        self.logger.debug(f"Starting export cycle {outcome.cycle_id}")

        try:
            await call_with_timeout(self._run_once(outcome), self.config.export_timeout_millis)
            outcome.status = CycleStatus.SUCCESS
        except ExportTimeoutError as e:
            outcome.status = CycleStatus.TIMEOUT
            outcome.error = e
        except ExportError as e:
            outcome.status = CycleStatus.EXPORT_FAILURE
            outcome.error = e
        except Exception as e:
            outcome.status = CycleStatus.ERROR
            outcome.error = e

        outcome.finished_at = datetime.now()
        self._record_outcome(outcome)
        self._error_router.route(outcome)
        return outcome

    async def _run_once(self, outcome: CycleOutcome) -> None:
        """
        Collect one batch and hand it to the exporter.

        Raises:
            ExportError: If the exporter reports a non-success result
        """
        collection = await self.collect()
        outcome.resource_metrics = collection.resource_metrics

        # A cycle that already timed out reports nothing more.
        if collection.errors and outcome.status == CycleStatus.PENDING:
            outcome.collection_errors = self._error_router.report_collection_errors(collection.errors)

        result = await self._exporter.export(collection.resource_metrics)

        if not result.success:
            message = f"{self.name}: metrics export failed"
            if result.error is not None:
                message = f"{message} ({result.error})"
            raise ExportError(message, error=result.error) from result.error

    def _record_outcome(self, outcome: CycleOutcome) -> None:
        self.outcome_counts[outcome.status.value] += 1
        self.last_status = outcome.status

        if outcome.status == CycleStatus.SUCCESS:
            self.last_success = outcome.finished_at
            self.logger.debug(
                f"Export cycle {outcome.cycle_id} completed in {outcome.duration_seconds:.3f}s"
            )

    async def on_force_flush(self) -> Any:
        """Forward to the exporter; the interval timer is left alone."""
        return await self._exporter.force_flush()

    async def on_shutdown(self) -> None:
        """
        Stop the timer and shut the exporter down.

        Cycles already in flight are not cancelled.
        """
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._state = ReaderState.STOPPED
        self.logger.info(
            f"Periodic export stopped after {self.cycles_started} cycles, "
            f"{len(self._inflight_cycles)} still in flight"
        )

        await self._exporter.shutdown()

    def select_aggregation(self, instrument_type: InstrumentType) -> Aggregation:
        return self.config.aggregation_selector(instrument_type)

    def select_aggregation_temporality(self, instrument_type: InstrumentType) -> AggregationTemporality:
        return self._exporter.select_aggregation_temporality(instrument_type)

    def get_status(self) -> Dict[str, Any]:
        """
        Get reader status.

        Returns:
            Dictionary with lifecycle state, configuration and cycle statistics
        """
        next_run_time = None
        if self._scheduler is not None:
            job = self._scheduler.get_job(EXPORT_JOB_ID)
            next_run_time = job.next_run_time if job else None

        return {
            "name": self.name,
            "state": self._state.value,
            "export_interval_millis": self.config.export_interval_millis,
            "export_timeout_millis": self.config.export_timeout_millis,
            "cycles_started": self.cycles_started,
            "cycles_in_flight": len(self._inflight_cycles),
            "outcomes": dict(self.outcome_counts),
            "last_run": self.last_run,
            "last_success": self.last_success,
            "last_status": self.last_status.value if self.last_status else None,
            "next_run_time": next_run_time
        }
