"""
Core data models for the periodic metric reader.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional


class InstrumentType(Enum):
    """Kinds of measurement sources a reader may be asked about."""
    COUNTER = "counter"
    UP_DOWN_COUNTER = "up_down_counter"
    HISTOGRAM = "histogram"
    OBSERVABLE_COUNTER = "observable_counter"
    OBSERVABLE_UP_DOWN_COUNTER = "observable_up_down_counter"
    OBSERVABLE_GAUGE = "observable_gauge"


class AggregationTemporality(Enum):
    """Whether aggregates are reported since start or since the last export."""
    DELTA = "delta"
    CUMULATIVE = "cumulative"


class Aggregation(Enum):
    """Aggregation strategies an instrument can be configured with."""
    DEFAULT = "default"
    DROP = "drop"
    SUM = "sum"
    LAST_VALUE = "last_value"
    HISTOGRAM = "histogram"


def default_aggregation_selector(instrument_type: InstrumentType) -> Aggregation:
    """Use the default aggregation for every instrument type."""
    return Aggregation.DEFAULT


def default_aggregation_temporality_selector(
    instrument_type: InstrumentType
) -> AggregationTemporality:
    """Report cumulative aggregates for every instrument type."""
    return AggregationTemporality.CUMULATIVE


class ExportResultCode(Enum):
    """Export result codes."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ExportResult:
    """Result reported by an exporter for a single export call."""
    code: ExportResultCode
    error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.code == ExportResultCode.SUCCESS


@dataclass
class CollectionResult:
    """A collected batch plus the non-fatal errors hit while collecting it."""
    resource_metrics: Any
    errors: List[BaseException] = field(default_factory=list)


class CycleStatus(Enum):
    """Terminal status of one collect-then-export cycle."""
    PENDING = "pending"
    SUCCESS = "success"
    EXPORT_FAILURE = "export_failure"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass
class CycleOutcome:
    """Outcome of a single scheduled cycle, created when the tick starts."""
    cycle_id: int
    started_at: datetime
    status: CycleStatus = CycleStatus.PENDING
    resource_metrics: Any = None
    collection_errors: List[BaseException] = field(default_factory=list)
    error: Optional[BaseException] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
