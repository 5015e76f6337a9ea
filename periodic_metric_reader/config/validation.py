"""
Reader option validation using Pydantic.
"""

import math
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from periodic_metric_reader.config.models import (
    DEFAULT_EXPORT_INTERVAL_MILLIS,
    DEFAULT_EXPORT_TIMEOUT_MILLIS,
    Millis,
    ReaderConfig,
)
from periodic_metric_reader.models.core import default_aggregation_selector

# Capabilities every push exporter has to provide.
EXPORTER_CAPABILITIES = (
    "export",
    "force_flush",
    "shutdown",
    "select_aggregation_temporality",
)


class ConfigurationError(ValueError):
    """Raised when reader options are invalid."""
    pass


class ReaderOptionsValidator(BaseModel):
    """Pydantic model for periodic exporting reader options."""
    exporter: Any = Field(..., description="Push exporter receiving every collected batch")
    aggregation_selector: Optional[Callable] = Field(
        default=None,
        description="Instrument type to aggregation selector"
    )
    export_interval_millis: Optional[Millis] = Field(
        default=None,
        description="Milliseconds between two collect-then-export cycles"
    )
    export_timeout_millis: Optional[Millis] = Field(
        default=None,
        description="Milliseconds a single cycle may take before it is reported as timed out"
    )

    model_config = {
        "arbitrary_types_allowed": True,
        "extra": "forbid",
        "frozen": True
    }

    @field_validator('exporter')
    @classmethod
    def validate_exporter(cls, v):
        """Ensure the exporter exposes every push exporter capability."""
        if v is None:
            raise ValueError("exporter is required")

        missing = [name for name in EXPORTER_CAPABILITIES if not callable(getattr(v, name, None))]
        if missing:
            raise ValueError(f"exporter is missing required capabilities: {', '.join(missing)}")

        return v

    @field_validator('export_interval_millis')
    @classmethod
    def validate_export_interval(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError("export interval must be a finite number")
        if v is not None and v <= 0:
            raise ValueError("export interval must be greater than 0")
        return v

    @field_validator('export_timeout_millis')
    @classmethod
    def validate_export_timeout(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError("export timeout must be a finite number")
        if v is not None and v <= 0:
            raise ValueError("export timeout must be greater than 0")
        return v

    @model_validator(mode='after')
    def validate_timeout_within_interval(self):
        """A cycle may not be allowed to run longer than the gap between ticks."""
        if (
            self.export_interval_millis is not None
            and self.export_timeout_millis is not None
            and self.export_interval_millis < self.export_timeout_millis
        ):
            raise ValueError("export interval must be greater than or equal to timeout")

        return self

    def to_reader_config(self) -> ReaderConfig:
        """Apply defaults and freeze the options into a ReaderConfig."""
        return ReaderConfig(
            exporter=self.exporter,
            export_interval_millis=(
                self.export_interval_millis
                if self.export_interval_millis is not None
                else DEFAULT_EXPORT_INTERVAL_MILLIS
            ),
            export_timeout_millis=(
                self.export_timeout_millis
                if self.export_timeout_millis is not None
                else DEFAULT_EXPORT_TIMEOUT_MILLIS
            ),
            aggregation_selector=self.aggregation_selector or default_aggregation_selector
        )


def validate_reader_options(**options: Any) -> ReaderConfig:
    """
    Validate reader options and return the normalized configuration.

    Options left out (or passed as None) fall back to their defaults; the
    range checks only apply to values that were actually supplied.

    Args:
        **options: exporter, aggregation_selector, export_interval_millis,
            export_timeout_millis

    Returns:
        Immutable ReaderConfig

    Raises:
        ConfigurationError: If validation fails
    """
    try:
        validated = ReaderOptionsValidator(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Reader configuration validation failed: {e}") from e

    return validated.to_reader_config()


def get_env_var_mappings() -> Dict[str, str]:
    """
    Get mapping of environment variables to reader options.

    Returns:
        Dictionary mapping environment variable names to option names
    """
    return {
        'OTEL_METRIC_EXPORT_INTERVAL': 'export_interval_millis',
        'OTEL_METRIC_EXPORT_TIMEOUT': 'export_timeout_millis',
    }
