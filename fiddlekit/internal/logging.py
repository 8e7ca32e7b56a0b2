import logging
import logging.handlers
import os
import sys
from pathlib import Path
import structlog

from fiddlekit.internal import paths
from fiddlekit.internal.constants import LOG_LEVEL_ENV_VAR

_LOGGING_CONFIGURED = False

def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
        ],
    )

def setup_logging(
    log_level_name: str = "INFO",
    log_file_path: Path | None = None,
    console_output: bool = False,
    force: bool = False,
):
    """
    Configure logging for fiddlekit.
    - Uses structlog for structured logging.
    - Writes JSON logs to a rotating file if log_file_path is provided
      (plain text unless the file name ends with '.json').
    - Can optionally send human-readable logs to stderr, so command output
      on stdout stays clean.
    - Log level can be set with the FIDDLEKIT_LOG_LEVEL environment variable or function argument.
    - force=True replaces an earlier configuration (used by the CLI --verbose flag).
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED and not force:
        return # Prevent re-configuring logging

    effective_log_level_name = os.environ.get(LOG_LEVEL_ENV_VAR, log_level_name).upper()
    log_level = getattr(logging, effective_log_level_name, logging.INFO)

    handlers = []

    if log_file_path:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=5,
        )
        file_handler.setFormatter(_formatter(
            structlog.processors.JSONRenderer()
            if log_file_path.name.endswith(".json")
            else structlog.dev.ConsoleRenderer(colors=False)
        ))
        handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer()))
        handlers.append(console_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    # Mute noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter, # Hand off to the stdlib handlers
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )
    _LOGGING_CONFIGURED = True

def get_logger(name: str | None = None):
    return structlog.get_logger(name)

# Library users get JSON logs in the app data directory and nothing on the
# console until an entry point asks for more.
if not _LOGGING_CONFIGURED:
    setup_logging(log_file_path=paths.get_log_file(), console_output=False)
