"""
Routing of cycle failures to logging or to the process-wide error sink.
"""

import logging
from typing import Callable, Iterable, List, Optional

from periodic_metric_reader.config.models import Millis
from periodic_metric_reader.models.core import CycleOutcome, CycleStatus
from periodic_metric_reader.utils.error_classification import (
    CollectionError,
    ErrorCategory,
    ErrorClassifier,
    ErrorDisposition,
    ErrorSeverity,
    error_classifier,
)
from periodic_metric_reader.utils.structured_logging import LogContext, get_logger

logger = logging.getLogger(__name__)

ErrorSink = Callable[[BaseException], None]

# Level used for failures that are logged rather than forwarded to the sink
SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.WARNING,
    ErrorSeverity.MEDIUM: logging.ERROR,
    ErrorSeverity.HIGH: logging.ERROR,
}


def logging_error_handler(error: BaseException) -> None:
    """Default error sink: log the failure with its traceback."""
    logger.error(f"Unhandled error during metric export: {error}", exc_info=error)


_global_error_handler: ErrorSink = logging_error_handler


def set_global_error_handler(handler: ErrorSink) -> None:
    """Replace the process-wide error sink."""
    global _global_error_handler
    _global_error_handler = handler


def get_global_error_handler() -> ErrorSink:
    return _global_error_handler


def global_error_handler(error: BaseException) -> None:
    """Forward an error to whatever handler is currently installed."""
    _global_error_handler(error)


class CycleErrorRouter:
    """
    Classifies the failures of a cycle and dispatches them.

    Collection errors and timeouts are logged at error severity; export
    failures and anything unexpected go to the error sink, which owns
    their final disposition. Nothing raised here escapes into the tick.
    """

    def __init__(
        self,
        reader_name: str,
        timeout_millis: Millis,
        error_sink: Optional[ErrorSink] = None,
        classifier: Optional[ErrorClassifier] = None
    ):
        """
        Initialize the router.

        Args:
            reader_name: Name identifying the reader in log records
            timeout_millis: Configured per-cycle timeout, named in timeout logs
            error_sink: Sink for export and unexpected failures, defaults to
                the process-wide global_error_handler
            classifier: Error classifier, defaults to the shared instance
        """
        self.reader_name = reader_name
        self.timeout_millis = timeout_millis
        self.error_sink = error_sink or global_error_handler
        self.classifier = classifier or error_classifier
        self.logger = get_logger(
            f"{__name__}.{self.__class__.__name__}",
            LogContext(reader_name=reader_name, operation="route_errors")
        )

    def report_collection_errors(self, errors: Iterable[BaseException]) -> List[CollectionError]:
        """
        Log the non-fatal errors of one collection as a single batch.

        Args:
            errors: Errors reported alongside the collected batch

        Returns:
            The errors wrapped as CollectionError, empty if there were none
        """
        collection_errors = [
            e if isinstance(e, CollectionError) else CollectionError(e, self.reader_name)
            for e in errors
        ]
        if not collection_errors:
            return collection_errors

        self.logger.error(
            "%s: metrics collection errors: %s",
            self.reader_name,
            "; ".join(repr(e.error) for e in collection_errors),
            error_count=len(collection_errors)
        )
        return collection_errors

    def route(self, outcome: CycleOutcome) -> None:
        """
        Dispatch the terminal status of a cycle.

        Args:
            outcome: Outcome of the finished (or timed out) cycle
        """
        if outcome.status == CycleStatus.SUCCESS or outcome.error is None:
            return

        classification = self.classifier.classify_error(outcome.error)
        level = SEVERITY_LOG_LEVELS[classification.severity]

        if classification.category == ErrorCategory.TIMEOUT:
            self.logger.log(
                level,
                "Export took longer than %s milliseconds and timed out.",
                self.timeout_millis,
                cycle_id=outcome.cycle_id
            )
        elif classification.disposition == ErrorDisposition.ERROR_SINK:
            self._forward_to_sink(outcome.error)
        else:
            self.logger.log(
                level,
                "Cycle %s failed: %s (%s)",
                outcome.cycle_id,
                outcome.error,
                classification.description or classification.category.value,
                category=classification.category.value,
                severity=classification.severity.value
            )

    def _forward_to_sink(self, error: BaseException) -> None:
        try:
            self.error_sink(error)
        except Exception:
            self.logger.exception("Error sink raised while handling %r", error)
