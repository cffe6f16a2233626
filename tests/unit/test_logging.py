"""
Unit tests for console logging, log contexts and the structured run log.
"""

import json
import logging

import pytest

from ghostwriter.utils import structured_log
from ghostwriter.utils.log_context import role_log_context, workflow_phase_context
from ghostwriter.utils.logging_config import (
    ColoredFormatter,
    LogLevel,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_package_logger():
    logger = logging.getLogger("ghostwriter")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def run_log(tmp_path):
    path = structured_log.configure_run_logging(str(tmp_path / "logs"))
    yield path
    structured_log.shutdown_run_logging()


def read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestLoggingConfig:
    @pytest.mark.parametrize(
        "level,verbose,debug,expected",
        [
            (LogLevel.MINIMAL, False, False, logging.WARNING),
            (LogLevel.NORMAL, False, False, logging.INFO),
            (LogLevel.DETAILED, False, False, logging.DEBUG),
            (LogLevel.MINIMAL, True, False, logging.DEBUG),
            ("normal", False, True, logging.DEBUG),
        ],
    )
    def test_levels(self, restore_package_logger, level, verbose, debug, expected):
        logger = setup_logging(level=level, verbose=verbose, debug=debug)

        assert logger.name == "ghostwriter"
        assert logger.level == expected
        assert len(logger.handlers) == 1

    def test_file_handler_logs_everything(self, restore_package_logger, tmp_path):
        log_file = tmp_path / "nested" / "run.log"
        logger = setup_logging(level=LogLevel.MINIMAL, log_to_file=True, log_file=str(log_file))

        logger.warning("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_get_logger_namespaces_names(self):
        assert get_logger("ghostwriter.pipeline").name == "ghostwriter.pipeline"
        assert get_logger("ghostwriter").name == "ghostwriter"
        assert get_logger("plugins").name == "ghostwriter.plugins"

    def test_colored_formatter_leaves_record_untouched(self):
        record = logging.makeLogRecord({"levelname": "INFO", "msg": "hello"})

        rendered = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "hello" in rendered
        assert record.levelname == "INFO"


class TestLogContext:
    def test_role_context_logs_completion(self, caplog):
        caplog.set_level(logging.DEBUG, logger="ghostwriter")

        with role_log_context("writer", "write section"):
            pass

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "[writer] Starting write section"
        assert messages[1].startswith("[writer] Completed write section in ")

    def test_role_context_logs_and_reraises_failures(self, caplog):
        caplog.set_level(logging.DEBUG, logger="ghostwriter")

        with pytest.raises(ValueError):
            with role_log_context("editor", "edit"):
                raise ValueError("bad draft")

        assert "[editor] Failed edit: bad draft" in caplog.text

    def test_phase_context(self, caplog):
        caplog.set_level(logging.INFO, logger="ghostwriter")

        with workflow_phase_context("planning"):
            pass

        assert "=== Phase: planning ===" in caplog.text
        assert "=== Phase planning completed in" in caplog.text


class TestStructuredLog:
    def test_helpers_are_noops_before_configuration(self, tmp_path):
        structured_log.log_phase("planning", "start")
        structured_log.log_rate_limit_wait(3, 3)

        assert not (tmp_path / "logs").exists()

    def test_run_log_records_bound_events(self, run_log):
        structured_log.bind_run("run-1", "async rust")
        structured_log.log_phase("planning", "done", sections=3)
        structured_log.log_progress("writing", "Wrote intro", 0.41234, 1.234, 5.0)
        structured_log.log_api_call("gpt-test", "success", latency_ms=120, tokens_in=10)
        structured_log.shutdown_run_logging()

        phase, progress, api_call = read_lines(run_log)
        assert phase["event"] == "phase"
        assert phase["run_id"] == "run-1"
        assert phase["subject"] == "async rust"
        assert phase["sections"] == 3
        assert progress["progress"] == 0.4123
        assert progress["elapsed_s"] == 1.23
        assert api_call["latency_ms"] == 120
        assert "tokens_out" not in api_call

    def test_configure_is_idempotent(self, run_log, tmp_path):
        again = structured_log.configure_run_logging(str(tmp_path / "logs"))

        assert again == run_log
