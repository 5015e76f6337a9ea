"""
Configuration data models.
"""

from dataclasses import dataclass
from typing import Any, Callable, Union

from periodic_metric_reader.models.core import (
    Aggregation,
    InstrumentType,
    default_aggregation_selector,
)

DEFAULT_EXPORT_INTERVAL_MILLIS = 60000
DEFAULT_EXPORT_TIMEOUT_MILLIS = 30000

AggregationSelector = Callable[[InstrumentType], Aggregation]

# Millisecond values keep the type they were given in.
Millis = Union[int, float]


@dataclass(frozen=True)
class ReaderConfig:
    """Normalized, immutable configuration of a periodic exporting reader."""
    exporter: Any
    export_interval_millis: Millis = DEFAULT_EXPORT_INTERVAL_MILLIS
    export_timeout_millis: Millis = DEFAULT_EXPORT_TIMEOUT_MILLIS
    aggregation_selector: AggregationSelector = default_aggregation_selector

    @property
    def export_interval_seconds(self) -> float:
        return self.export_interval_millis / 1000
