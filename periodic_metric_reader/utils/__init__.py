"""
Utility modules for the periodic metric reader.
"""

from .error_classification import (
    CollectionError,
    ErrorCategory,
    ErrorClassifier,
    ExportError,
    ExportTimeoutError,
)
from .error_handling import (
    CycleErrorRouter,
    global_error_handler,
    set_global_error_handler,
)
from .structured_logging import LogContext, get_logger, logging_manager, with_correlation_id
from .timeout import call_with_timeout

__all__ = [
    "CollectionError",
    "ErrorCategory",
    "ErrorClassifier",
    "ExportError",
    "ExportTimeoutError",
    "CycleErrorRouter",
    "global_error_handler",
    "set_global_error_handler",
    "LogContext",
    "get_logger",
    "logging_manager",
    "with_correlation_id",
    "call_with_timeout",
]
