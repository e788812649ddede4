"""
Unit tests for utility modules.

Tests for error_handling and advanced_logging.
"""

import pytest
from unittest.mock import Mock

from clustkit.utils.advanced_logging import (
    LogContext,
    PerformanceLogger,
    add_service_context,
    configure_logging,
    get_logger,
    log_exceptions,
    timed,
)
from clustkit.utils.error_handling import (
    ClusteringError,
    ClusteringToolkitError,
    DataError,
    DimensionMismatch,
    InvalidK,
    UnsupportedLinkage,
    check_k,
)


@pytest.mark.unit
class TestErrorHandling:
    """Test error handling utilities."""

    def test_error_hierarchy(self):
        """Test custom exception classes."""
        assert issubclass(InvalidK, ClusteringError)
        assert issubclass(UnsupportedLinkage, ClusteringError)
        assert issubclass(DimensionMismatch, DataError)
        assert issubclass(DataError, ClusteringToolkitError)

    def test_error_to_dict(self):
        """Test errors serialize with code and details."""
        error = InvalidK("k too large", details={"k": 9, "n": 4})
        data = error.to_dict()

        assert str(error) == "k too large"
        assert data["error_type"] == "InvalidK"
        assert data["error_code"] == "InvalidK"
        assert data["details"] == {"k": 9, "n": 4}

    def test_custom_error_code(self):
        """Test an explicit error code is kept."""
        assert ClusteringError("x", error_code="E42").error_code == "E42"

    def test_check_k(self):
        """Test k validation bounds."""
        assert check_k(3, 10) == 3
        assert check_k(2.0, 10) == 2
        with pytest.raises(InvalidK):
            check_k(0, 10)
        with pytest.raises(InvalidK):
            check_k(10, 10, maximum=9)
        with pytest.raises(InvalidK):
            check_k(2.5, 10)
        with pytest.raises(InvalidK):
            check_k(True, 10)


@pytest.mark.unit
class TestAdvancedLogging:
    """Test advanced logging utilities."""

    def test_configure_logging(self):
        """Test logging setup in both formats."""
        configure_logging(log_level="DEBUG", log_format="console")
        configure_logging(log_level="INFO", log_format="json")
        assert get_logger("clustkit.test") is not None

    def test_configure_file_logging(self, tmp_path):
        """Test a log file directory is created."""
        log_file = tmp_path / "logs" / "clustkit.log"
        configure_logging(log_format="json", log_file=str(log_file))
        assert log_file.parent.exists()

    def test_run_context(self):
        """Test run ID is set inside the context and restored after."""
        LogContext.clear_run_id()
        with LogContext.run_context("outer"):
            with LogContext.run_context("inner"):
                assert LogContext.get_run_id() == "inner"
            assert LogContext.get_run_id() == "outer"
        assert LogContext.get_run_id() is None

    def test_service_context_processor(self):
        """Test service name and run ID are added to events."""
        processor = add_service_context("clustkit")
        with LogContext.run_context("run-1"):
            event = processor(None, "info", {"event": "x"})

        assert event["service"] == "clustkit"
        assert event["run_id"] == "run-1"

    def test_performance_logger(self):
        """Test timing, throughput and memory fields."""
        logger = Mock()
        with PerformanceLogger("op", logger=logger, item_count=10, track_memory=True) as perf:
            sum(range(1000))

        assert perf.elapsed_time >= 0
        event, = logger.info.call_args[0]
        fields = logger.info.call_args[1]
        assert event == "operation_completed"
        assert fields["operation"] == "op"
        assert "memory_delta_mb" in fields

    def test_performance_logger_failure(self):
        """Test failures are logged and propagated."""
        logger = Mock()
        with pytest.raises(ValueError):
            with PerformanceLogger("op", logger=logger):
                raise ValueError("boom")

        assert logger.error.call_args[0][0] == "operation_failed"
        assert logger.error.call_args[1]["error_type"] == "ValueError"

    def test_timed_decorator(self):
        """Test the decorator returns the wrapped result."""

        @timed(log_level="debug")
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_log_exceptions(self):
        """Test exceptions are logged, then re-raised unless suppressed."""
        logger = Mock()
        with pytest.raises(KeyError):
            with log_exceptions(logger, operation="lookup"):
                raise KeyError("missing")
        assert logger.error.call_args[1]["operation"] == "lookup"

        with log_exceptions(logger, reraise=False):
            raise KeyError("ignored")
