"""
Structured logging for metric readers.

Every export cycle runs under its own correlation ID. Records carry that ID
together with the reader's LogContext, and StructuredFormatter renders them
as one JSON object per line so all records of a cycle, including its
background continuation after a timeout, can be grouped.
"""

import functools
import inspect
import json
import logging
import logging.handlers
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

# Correlation ID of the export cycle currently running
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Attributes present on every LogRecord; anything else was passed as extra.
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id"}


@dataclass
class LogContext:
    """Fields attached to every record of a ContextualLogger."""
    reader_name: Optional[str] = None
    exporter: Optional[str] = None
    operation: Optional[str] = None
    additional_fields: Dict[str, Any] = field(default_factory=dict)

    def as_extra(self) -> Dict[str, Any]:
        extra = {
            key: value
            for key, value in (
                ("reader_name", self.reader_name),
                ("exporter", self.exporter),
                ("operation", self.operation),
            )
            if value
        }
        extra.update(self.additional_fields)
        return extra

    def updated(self, **changes) -> 'LogContext':
        """Copy with the given fields replaced and additional fields merged."""
        additional_fields = {**self.additional_fields, **changes.pop('additional_fields', {})}
        return replace(self, additional_fields=additional_fields, **changes)


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "unknown"
        return True


class StructuredFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def __init__(self, include_extra_fields: bool = True):
        super().__init__()
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or correlation_id.get() or "unknown",
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra_fields:
            extra = {
                key: value
                for key, value in vars(record).items()
                if key not in _STANDARD_RECORD_ATTRS
            }
            if extra:
                entry["extra"] = extra

        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextualLogger:
    """
    Logger wrapper that attaches a LogContext to every record.

    Context fields and keyword arguments travel as ``extra`` on the record,
    which keeps them visible to StructuredFormatter and to ``caplog``.
    """

    def __init__(self, name: str, context: Optional[LogContext] = None):
        self.logger = logging.getLogger(name)
        self.context = context or LogContext()

    def _emit(self, level: int, message: str, args: tuple, exc_info: Any, fields: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return

        extra = self.context.as_extra()
        extra.update(fields)
        # Report the caller of log()/debug()/... as the record location.
        self.logger.log(level, message, *args, exc_info=exc_info, extra=extra, stacklevel=3)

    def log(self, level: int, message: str, *args, exc_info: Any = None, **fields) -> None:
        self._emit(level, message, args, exc_info, fields)

    def debug(self, message: str, *args, **fields) -> None:
        self._emit(logging.DEBUG, message, args, None, fields)

    def info(self, message: str, *args, **fields) -> None:
        self._emit(logging.INFO, message, args, None, fields)

    def warning(self, message: str, *args, **fields) -> None:
        self._emit(logging.WARNING, message, args, None, fields)

    def error(self, message: str, *args, **fields) -> None:
        self._emit(logging.ERROR, message, args, None, fields)

    def exception(self, message: str, *args, **fields) -> None:
        self._emit(logging.ERROR, message, args, True, fields)

    def with_context(self, **changes) -> 'ContextualLogger':
        """Create a logger for the same name with an updated context."""
        return ContextualLogger(self.logger.name, self.context.updated(**changes))


class LoggingManager:
    """
    Installs the reader's log handlers on the root logger.

    Only handlers installed here are ever removed again; handlers added by
    the host application are left alone.
    """

    def __init__(self):
        self._handlers: List[logging.Handler] = []
        self._previous_level: Optional[int] = None

    @property
    def configured(self) -> bool:
        return bool(self._handlers)

    def setup_logging(
        self,
        log_level: str = "INFO",
        log_file: Optional[str] = None,
        console_output: bool = True,
        structured_format: bool = True,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """
        Set up logging for an application embedding the reader.

        Configuring twice is a no-op until ``reset()`` is called.

        Args:
            log_level: Root logging level name
            log_file: Optional path of a rotating log file
            console_output: Whether to log to stdout
            structured_format: JSON lines if True, plain text otherwise
            max_file_size: Size in bytes before the log file rotates
            backup_count: Number of rotated files to keep
        """
        if self._handlers:
            return

        root_logger = logging.getLogger()
        self._previous_level = root_logger.level
        root_logger.setLevel(log_level.upper())

        if structured_format:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(correlation_id)s - %(message)s'
            )

        if console_output:
            self._install(logging.StreamHandler(sys.stdout), formatter)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            self._install(
                logging.handlers.RotatingFileHandler(
                    log_file,
                    maxBytes=max_file_size,
                    backupCount=backup_count,
                    encoding='utf-8'
                ),
                formatter
            )

        # APScheduler logs every job run at INFO.
        logging.getLogger('apscheduler').setLevel(logging.WARNING)

    def _install(self, handler: logging.Handler, formatter: logging.Formatter) -> None:
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationIdFilter())
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def reset(self) -> None:
        """Remove the installed handlers and restore the root level."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

        if self._previous_level is not None:
            root_logger.setLevel(self._previous_level)
            self._previous_level = None


# Global logging manager instance
logging_manager = LoggingManager()


def get_logger(name: str, context: Optional[LogContext] = None) -> ContextualLogger:
    return ContextualLogger(name, context)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def correlation_scope(corr_id: Optional[str] = None) -> Iterator[str]:
    """Run the enclosed block under a correlation ID, generating one if needed."""
    token = correlation_id.set(corr_id or new_correlation_id())
    try:
        yield correlation_id.get()
    finally:
        correlation_id.reset(token)


def with_correlation_id(corr_id: Optional[str] = None):
    """
    Decorator running each call under its own correlation ID.

    Tasks created during the call copy the current context, so background
    work started by the function keeps the same ID.

    Args:
        corr_id: Fixed correlation ID, or None to generate one per call
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with correlation_scope(corr_id):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with correlation_scope(corr_id):
                return func(*args, **kwargs)
        return sync_wrapper
    return decorator
