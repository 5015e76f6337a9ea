"""
Tests for reader option validation.
"""

import dataclasses
from unittest.mock import Mock

import pytest

from periodic_metric_reader.config.models import (
    DEFAULT_EXPORT_INTERVAL_MILLIS,
    DEFAULT_EXPORT_TIMEOUT_MILLIS,
)
from periodic_metric_reader.config.validation import (
    ConfigurationError,
    get_env_var_mappings,
    validate_reader_options,
)
from periodic_metric_reader.models.core import (
    Aggregation,
    InstrumentType,
    default_aggregation_selector,
)


class TestValidateReaderOptions:
    """Test cases for validate_reader_options."""

    def test_defaults_applied(self, mock_exporter):
        """Test defaults for options left out."""
        config = validate_reader_options(exporter=mock_exporter)

        assert config.exporter is mock_exporter
        assert config.export_interval_millis == DEFAULT_EXPORT_INTERVAL_MILLIS == 60000
        assert config.export_timeout_millis == DEFAULT_EXPORT_TIMEOUT_MILLIS == 30000
        assert config.aggregation_selector is default_aggregation_selector

    def test_none_means_default(self, mock_exporter):
        """Test that explicit None falls back to the defaults."""
        config = validate_reader_options(
            exporter=mock_exporter,
            export_interval_millis=None,
            export_timeout_millis=None
        )

        assert config.export_interval_millis == 60000
        assert config.export_timeout_millis == 30000

    def test_explicit_values(self, mock_exporter):
        """Test explicit interval and timeout."""
        config = validate_reader_options(
            exporter=mock_exporter,
            export_interval_millis=5000,
            export_timeout_millis=5000
        )

        assert config.export_interval_millis == 5000
        assert config.export_timeout_millis == 5000
        assert config.export_interval_seconds == 5.0

    def test_values_keep_their_type(self, mock_exporter):
        """Test int and float milliseconds are not coerced."""
        config = validate_reader_options(
            exporter=mock_exporter,
            export_interval_millis=1500.5,
            export_timeout_millis=20
        )

        assert config.export_timeout_millis == 20
        assert isinstance(config.export_timeout_millis, int)
        assert isinstance(config.export_interval_millis, float)
        assert isinstance(validate_reader_options(exporter=mock_exporter).export_interval_millis, int)

    def test_custom_aggregation_selector(self, mock_exporter):
        """Test a custom aggregation selector is kept."""
        selector = Mock(return_value=Aggregation.DROP)
        config = validate_reader_options(exporter=mock_exporter, aggregation_selector=selector)

        assert config.aggregation_selector(InstrumentType.COUNTER) == Aggregation.DROP

    def test_missing_exporter(self):
        """Test that the exporter is required."""
        with pytest.raises(ConfigurationError, match="exporter is required"):
            validate_reader_options(exporter=None)

        with pytest.raises(ConfigurationError):
            validate_reader_options()

    def test_exporter_missing_capabilities(self):
        """Test an object lacking the exporter methods is rejected."""
        class NotAnExporter:
            async def export(self, metrics):
                pass

        with pytest.raises(ConfigurationError, match="missing required capabilities"):
            validate_reader_options(exporter=NotAnExporter())

    @pytest.mark.parametrize("interval", [0, -1, -1000])
    def test_non_positive_interval(self, mock_exporter, interval):
        """Test interval must be positive."""
        with pytest.raises(ConfigurationError, match="export interval must be greater than 0"):
            validate_reader_options(exporter=mock_exporter, export_interval_millis=interval)

    @pytest.mark.parametrize("timeout", [0, -1, -1000])
    def test_non_positive_timeout(self, mock_exporter, timeout):
        """Test timeout must be positive."""
        with pytest.raises(ConfigurationError, match="export timeout must be greater than 0"):
            validate_reader_options(exporter=mock_exporter, export_timeout_millis=timeout)

    def test_interval_below_timeout(self, mock_exporter):
        """Test interval smaller than timeout is rejected."""
        with pytest.raises(ConfigurationError, match="export interval must be greater than or equal to timeout"):
            validate_reader_options(
                exporter=mock_exporter,
                export_interval_millis=100,
                export_timeout_millis=200
            )

    def test_interval_below_default_timeout_accepted(self, mock_exporter):
        """Test the ordering check only applies when both values are given."""
        config = validate_reader_options(exporter=mock_exporter, export_interval_millis=100)

        assert config.export_interval_millis == 100
        assert config.export_timeout_millis == 30000

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_values(self, mock_exporter, value):
        """Test NaN and infinity are rejected."""
        with pytest.raises(ConfigurationError):
            validate_reader_options(exporter=mock_exporter, export_interval_millis=value)

    def test_unknown_option(self, mock_exporter):
        """Test unknown options are rejected."""
        with pytest.raises(ConfigurationError):
            validate_reader_options(exporter=mock_exporter, export_every=10)

    def test_configuration_error_is_value_error(self, mock_exporter):
        """Test ConfigurationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_reader_options(exporter=mock_exporter, export_timeout_millis=-5)

    def test_config_is_frozen(self, mock_exporter):
        """Test the resulting configuration is immutable."""
        config = validate_reader_options(exporter=mock_exporter)

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.export_interval_millis = 1


def test_env_var_mappings():
    """Test environment variable names."""
    mappings = get_env_var_mappings()

    assert mappings == {
        'OTEL_METRIC_EXPORT_INTERVAL': 'export_interval_millis',
        'OTEL_METRIC_EXPORT_TIMEOUT': 'export_timeout_millis',
    }
