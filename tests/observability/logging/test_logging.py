import json
import logging
import logging.handlers
from unittest.mock import patch

import pytest
import structlog

from fiddlekit.internal.logging import get_logger, setup_logging

# --- Fixtures ---

@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Ensure logging state is clean for each test."""
    monkeypatch.delenv("FIDDLEKIT_LOG_LEVEL", raising=False)
    structlog.reset_defaults()
    logging.root.handlers = []

    with patch("fiddlekit.internal.logging._LOGGING_CONFIGURED", False):
        yield
        for handler in logging.root.handlers[:]:
            handler.close()
            logging.root.removeHandler(handler)
        setup_logging(force=True)

@pytest.fixture
def json_log_file(tmp_path):
    return tmp_path / "logs" / "test.log.json"

def read_entries(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]

# --- Tests ---

def test_logging_is_structured_json(json_log_file):
    """Verify that logs are emitted in a structured JSON format to file."""
    setup_logging(log_level_name="INFO", log_file_path=json_log_file)
    logger = get_logger("fiddlekit.test")

    logger.info("Result update...", session_id="sess-1", updates=2)

    entry = read_entries(json_log_file)[0]
    assert entry["event"] == "Result update..."
    assert entry["session_id"] == "sess-1"
    assert entry["updates"] == 2
    assert entry["level"] == "info"
    assert entry["logger"] == "fiddlekit.test"
    assert "timestamp" in entry


def test_logging_level_filtering(json_log_file):
    setup_logging(log_level_name="INFO", log_file_path=json_log_file)
    logger = get_logger("filter.test")

    logger.debug("Debug message - should not appear")
    logger.info("Info message - should appear")
    logger.warning("Warning message - should appear")

    events = [e["event"] for e in read_entries(json_log_file)]
    assert "Debug message - should not appear" not in events
    assert "Info message - should appear" in events
    assert "Warning message - should appear" in events


def test_log_level_from_environment(json_log_file, monkeypatch):
    monkeypatch.setenv("FIDDLEKIT_LOG_LEVEL", "debug")
    setup_logging(log_level_name="WARNING", log_file_path=json_log_file)

    get_logger("env.test").debug("Visible at debug")

    assert [e["event"] for e in read_entries(json_log_file)] == ["Visible at debug"]


def test_console_output_goes_to_stderr(capsys):
    setup_logging(log_level_name="INFO", console_output=True)

    get_logger("console.test").info("Hello console!")

    captured = capsys.readouterr()
    assert "Hello console!" in captured.err
    assert "Hello console!" not in captured.out


def test_second_setup_is_ignored_unless_forced(json_log_file, tmp_path):
    setup_logging(log_file_path=json_log_file)
    other = tmp_path / "other.log.json"

    setup_logging(log_file_path=other)
    assert not other.exists()

    setup_logging(log_file_path=other, force=True)
    get_logger("force.test").info("After force")
    assert [e["event"] for e in read_entries(other)] == ["After force"]


def test_no_handlers_configured_sends_to_null(capsys):
    setup_logging(log_level_name="INFO")

    get_logger("null.test").info("This should not be seen.")

    captured = capsys.readouterr()
    assert "This should not be seen." not in captured.out
    assert "This should not be seen." not in captured.err
    assert isinstance(logging.root.handlers[0], logging.NullHandler)
