"""
Advanced Logging Module

structlog on top of stdlib logging for the clustering toolkit:
- JSON or console rendering, optional rotating log file
- Run ID tagging, so the distance, clustering and validation events of one
  analysis can be grouped
- Timing of expensive steps (gap statistic, validation sweeps) with
  throughput and process memory, since dissimilarity matrices grow as N^2
- Decorator and context manager helpers for timing and exception logging

Core algorithm modules log through ``logging.getLogger(__name__)``; the
validation layer emits structured events through ``get_logger``.
"""

import contextlib
import functools
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

import psutil
import structlog
from structlog.types import EventDict, Processor

# Rotating log file limits
_LOG_FILE_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 3

_MB = 1024 * 1024


# =============================================================================
# Structured Logging Configuration
# =============================================================================


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def _attach_file_handler(log_file: str, level: int) -> None:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_LOG_FILE_BYTES, backupCount=_LOG_FILE_BACKUPS
    )
    handler.setLevel(level)
    logging.root.addHandler(handler)


def _shared_processors(service_name: str) -> List[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context(service_name),
    ]


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    service_name: str = "clustkit",
) -> None:
    """
    Route structlog events through stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" for machine-readable lines, "console" for humans
        log_file: Also write to this rotating file when given
        service_name: Value of the ``service`` field on every event
    """
    level = _level(log_level)
    logging.basicConfig(format="%(message)s", level=level)
    if log_file:
        _attach_file_handler(log_file, level)

    processors = _shared_processors(service_name)
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_service_context(service_name: str) -> Processor:
    """Processor stamping the service name and the active run ID."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = service_name
        run_id = LogContext.get_run_id()
        if run_id and "run_id" not in event_dict:
            event_dict["run_id"] = run_id
        return event_dict

    return processor


# =============================================================================
# Run ID Context
# =============================================================================


class LogContext:
    """
    Run ID of the analysis in progress.

    Every event logged inside ``run_context`` carries the run id. Contexts
    nest; leaving one restores the enclosing run id.
    """

    _run_id: Optional[str] = None

    @classmethod
    def set_run_id(cls, run_id: str) -> None:
        cls._run_id = run_id

    @classmethod
    def get_run_id(cls) -> Optional[str]:
        return cls._run_id

    @classmethod
    def clear_run_id(cls) -> None:
        cls._run_id = None

    @classmethod
    @contextlib.contextmanager
    def run_context(cls, run_id: str) -> Iterator[None]:
        """
        Tag events with ``run_id`` for the duration of the block.

        Example:
            with LogContext.run_context("usarrests-pam"):
                pam(dissimilarity, k=4)
        """
        previous = cls._run_id
        cls._run_id = run_id
        try:
            yield
        finally:
            cls._run_id = previous


def get_logger(name: str) -> structlog.BoundLogger:
    """
    structlog logger for ``name``, bound to the current run ID if any.

    Args:
        name: Logger name (usually __name__)
    """
    logger = structlog.get_logger(name)
    run_id = LogContext.get_run_id()
    return logger.bind(run_id=run_id) if run_id else logger


# =============================================================================
# Performance Logger
# =============================================================================


def _rss_bytes() -> int:
    return psutil.Process().memory_info().rss


class PerformanceLogger:
    """
    Time a block and log one ``operation_completed`` (or
    ``operation_failed``) event when it exits.

    With ``item_count`` the event carries a rate, e.g. clusterings fitted
    per second in a gap statistic run. With ``track_memory`` it carries the
    resident memory of the process and its change over the block.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.BoundLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        track_memory: bool = False,
        **extra_context: Any,
    ):
        """
        Args:
            operation: Name logged in the ``operation`` field
            logger: Logger to write to (a module logger if None)
            log_level: Level of the completion event
            item_count: Units of work done inside the block
            track_memory: Record resident memory before and after
            **extra_context: Extra fields added to both events
        """
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.track_memory = track_memory
        self.extra_context = extra_context
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self._rss_at_start: Optional[int] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.time()
        if self.track_memory:
            self._rss_at_start = _rss_bytes()
        self.logger.debug("operation_started", operation=self.operation, **self.extra_context)
        return self

    def _fields(self, duration: float) -> dict:
        fields = {
            "operation": self.operation,
            "duration_seconds": round(duration, 3),
            **self.extra_context,
        }
        if self.item_count and duration > 0:
            fields["item_count"] = self.item_count
            fields["items_per_second"] = round(self.item_count / duration, 2)
        if self._rss_at_start is not None:
            rss = _rss_bytes()
            fields["memory_mb"] = round(rss / _MB, 1)
            fields["memory_delta_mb"] = round((rss - self._rss_at_start) / _MB, 1)
        return fields

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.time()
        fields = self._fields(self.end_time - self.start_time)

        if exc_type is None:
            getattr(self.logger, self.log_level)("operation_completed", **fields)
        else:
            self.logger.error(
                "operation_failed", error=str(exc_val), error_type=exc_type.__name__, **fields
            )

    @property
    def elapsed_time(self) -> float:
        """Seconds since entering the block (final duration once exited)."""
        if self.start_time is None:
            return 0.0
        return (self.end_time or time.time()) - self.start_time


def timed(operation: Optional[str] = None, log_level: str = "info") -> Callable:
    """
    Wrap a function in a PerformanceLogger named after it.

    Example:
        @timed(log_level="debug")
        def elbow_method(data, k_values):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceLogger(
                operation or func.__name__,
                logger=get_logger(func.__module__),
                log_level=log_level,
            ):
                return func(*args, **kwargs)

        return wrapper

    return decorator


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[structlog.BoundLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
) -> Iterator[None]:
    """
    Log any exception leaving the block as ``exception_caught``.

    Args:
        logger: Logger to write to
        operation: Added as the ``operation`` field
        reraise: Propagate the exception after logging it

    Example:
        with log_exceptions(logger, operation="cluster_validation"):
            engine.cluster(data, "pam", {"n_clusters": 3})
    """
    log = logger or get_logger(__name__)
    try:
        yield
    except Exception as e:
        fields = {"error": str(e), "error_type": type(e).__name__}
        if operation:
            fields["operation"] = operation
        log.error("exception_caught", exc_info=True, **fields)
        if reraise:
            raise
