"""
Configuration management for periodic exporting metric readers.
"""

from .models import (
    DEFAULT_EXPORT_INTERVAL_MILLIS,
    DEFAULT_EXPORT_TIMEOUT_MILLIS,
    ReaderConfig,
)
from .manager import ReaderConfigManager
from .validation import (
    ConfigurationError,
    ReaderOptionsValidator,
    validate_reader_options,
    get_env_var_mappings,
)

__all__ = [
    # Models
    'DEFAULT_EXPORT_INTERVAL_MILLIS',
    'DEFAULT_EXPORT_TIMEOUT_MILLIS',
    'ReaderConfig',

    # Manager
    'ReaderConfigManager',

    # Validation
    'ConfigurationError',
    'ReaderOptionsValidator',
    'validate_reader_options',
    'get_env_var_mappings',
]
