"""
Error taxonomy for export cycles and the classifier that maps failures to it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Type

logger = logging.getLogger(__name__)


class CollectionError(Exception):
    """A non-fatal error reported while collecting a metrics batch."""

    def __init__(self, error: BaseException, reader_name: Optional[str] = None):
        self.error = error
        self.reader_name = reader_name
        super().__init__(f"Metrics collection error: {error!r}")


class ExportError(Exception):
    """The exporter reported a non-success result for a batch."""

    def __init__(self, message: str = "metrics export failed", error: Optional[BaseException] = None):
        self.error = error
        super().__init__(message)


class ExportTimeoutError(TimeoutError):
    """An operation did not settle before its deadline."""

    def __init__(self, timeout_millis: float):
        self.timeout_millis = timeout_millis
        super().__init__(f"Operation timed out after {timeout_millis} milliseconds")


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(Enum):
    """Categories of failures a cycle can end with."""
    COLLECTION = "collection"
    TIMEOUT = "timeout"
    EXPORT = "export"
    UNKNOWN = "unknown"


class ErrorDisposition(Enum):
    """Where a classified failure is sent."""
    LOG = "log"
    ERROR_SINK = "error_sink"


@dataclass
class ErrorClassification:
    """Classification of an error with its routing."""
    category: ErrorCategory
    severity: ErrorSeverity
    disposition: ErrorDisposition
    description: str = ""


UNKNOWN_CLASSIFICATION = ErrorClassification(
    category=ErrorCategory.UNKNOWN,
    severity=ErrorSeverity.HIGH,
    disposition=ErrorDisposition.ERROR_SINK,
    description="Unexpected failure during a cycle"
)


class ErrorClassifier:
    """
    Classifies cycle failures by exception type.

    Rules are looked up along the exception's MRO so subclasses inherit
    the classification of their closest registered base. Anything that
    matches no rule is UNKNOWN and goes to the error sink.
    """

    def __init__(self):
        self._classification_rules: Dict[Type[BaseException], ErrorClassification] = {}
        self._setup_default_classifications()

    def _setup_default_classifications(self) -> None:
        """Set up the default classifications for the cycle error taxonomy."""
        self.register_classification(
            CollectionError,
            ErrorClassification(
                category=ErrorCategory.COLLECTION,
                severity=ErrorSeverity.LOW,
                disposition=ErrorDisposition.LOG,
                description="Non-fatal metrics collection error"
            )
        )

        self.register_classification(
            ExportTimeoutError,
            ErrorClassification(
                category=ErrorCategory.TIMEOUT,
                severity=ErrorSeverity.MEDIUM,
                disposition=ErrorDisposition.LOG,
                description="Cycle exceeded the export timeout"
            )
        )

        self.register_classification(
            ExportError,
            ErrorClassification(
                category=ErrorCategory.EXPORT,
                severity=ErrorSeverity.HIGH,
                disposition=ErrorDisposition.ERROR_SINK,
                description="Exporter reported a failed export"
            )
        )

    def register_classification(
        self,
        exception_type: Type[BaseException],
        classification: ErrorClassification
    ) -> None:
        """Register (or replace) the classification for an exception type."""
        self._classification_rules[exception_type] = classification
        logger.debug(f"Registered classification for {exception_type.__name__}: {classification.category.value}")

    def classify_error(self, error: BaseException) -> ErrorClassification:
        """
        Classify an error.

        Args:
            error: The exception to classify

        Returns:
            ErrorClassification of the closest registered type
        """
        for klass in type(error).__mro__:
            classification = self._classification_rules.get(klass)
            if classification is not None:
                return classification

        return UNKNOWN_CLASSIFICATION


# Global error classifier instance
error_classifier = ErrorClassifier()
