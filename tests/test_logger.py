"""
Tests for logger functionality.
"""

import threading

from placement_engine.core.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self):
        logger = StructuredLogger(name="test", level="INFO", enable_console=False)

        assert logger.logger.name == "test"
        assert logger.metrics["transactions_committed"] == 0

    def test_log_with_context_to_file(self, tmp_path):
        """Context kwargs are rendered as JSON after the message."""
        logger = StructuredLogger(
            name="test_file",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.info("Admission selected", student_id="s1", released=["a1"])

        [log_file] = list(tmp_path.glob("placement_engine_*.log"))
        content = log_file.read_text(encoding="utf-8")
        assert "Admission selected" in content
        assert '"student_id": "s1"' in content
        assert '"released": ["a1"]' in content

    def test_counters(self):
        logger = StructuredLogger(name="test", enable_console=False)

        logger.record_commit()
        logger.record_commit()
        logger.record_conflict()
        logger.record_promotion()
        logger.record_status_update_failure()
        logger.record_notification()

        metrics = logger.get_metrics()
        assert metrics["transactions_committed"] == 2
        assert metrics["conflicts_retried"] == 1
        assert metrics["promotions"] == 1
        assert metrics["status_update_failures"] == 1
        assert metrics["notifications_sent"] == 1

    def test_errors_by_kind(self):
        logger = StructuredLogger(name="test", enable_console=False)

        logger.record_error("not_found")
        logger.record_error("not_found")
        logger.record_error("conflict")

        assert logger.get_metrics()["errors_by_kind"] == {"not_found": 2, "conflict": 1}

    def test_get_metrics_returns_copy(self):
        logger = StructuredLogger(name="test", enable_console=False)
        metrics = logger.get_metrics()
        metrics["errors_by_kind"]["timeout"] = 5
        assert logger.get_metrics()["errors_by_kind"] == {}

    def test_counters_from_many_threads(self):
        logger = StructuredLogger(name="test", enable_console=False)

        def work():
            for _ in range(2000):
                logger.record_commit()
                logger.record_error("conflict")

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        metrics = logger.get_metrics()
        assert metrics["transactions_committed"] == 16000
        assert metrics["errors_by_kind"] == {"conflict": 16000}


class TestGlobalLogger:
    def test_get_logger_is_singleton(self):
        assert get_logger() is get_logger()

    def test_reset_logger(self):
        first = get_logger()
        reset_logger()
        second = get_logger()
        assert first is not second
