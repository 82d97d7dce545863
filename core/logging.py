"""
Logging Module - Centralized logging configuration
=================================================

All loggers live under the ``answering_machine`` namespace. Records
carry the network and channel of the message being handled (set per
thread by the message handler), so a rule firing or failing can be
traced back to where it happened:

    [INFO] 2024-05-01 12:00:00 | libera/#help | rules.store | Rules successfully reloaded.

The console gets colored lines, log files get plain lines, and the
error file gets one JSON object per record. Verbose logging can be
switched on and off at runtime from the settings ``debug`` flag.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "answering_machine"
LOG_FILE_NAME = "answering-machine.log"
ERROR_LOG_FILE_NAME = "errors.log"

# Attributes filled in by ContextFilter on every record
CONTEXT_FIELDS = ("network", "channel")


def _short_name(record: logging.LogRecord) -> str:
    """Logger name without the common namespace prefix."""
    prefix = ROOT_LOGGER_NAME + "."
    return record.name[len(prefix):] if record.name.startswith(prefix) else record.name


def _location(record: logging.LogRecord) -> str:
    """'network/channel' for records emitted while handling a message."""
    network = getattr(record, "network", None)
    channel = getattr(record, "channel", None)
    if not network and not channel:
        return ""
    return f"{network or '-'}/{channel or '-'}"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record, used for the error log.

    Context fields and the ``details`` of AnsweringMachineError
    (passed as ``extra={"details": ...}``) are included when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": _short_name(record),
            "message": record.getMessage(),
            "line": record.lineno,
        }

        for key in CONTEXT_FIELDS + ("details",):
            value = getattr(record, key, None)
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter.

    Uses ANSI color codes to highlight log levels. Colors are dropped
    when the output stream is not a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        if self.use_color:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{self.BOLD}[{record.levelname}]{self.RESET}"
        else:
            level = f"[{record.levelname}]"

        parts = [f"{level} {timestamp}"]
        location = _location(record)
        if location:
            parts.append(location)
        parts.append(_short_name(record))
        parts.append(record.getMessage())

        formatted = " | ".join(parts)
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class ContextFilter(logging.Filter):
    """
    Copies the current thread's message context onto each record.

    Attached to handlers rather than loggers: a filter on the namespace
    logger would not see records from its child loggers.
    """

    _context = threading.local()

    @classmethod
    def set_context(cls, **kwargs) -> None:
        """Set context values for the current thread."""
        if not hasattr(cls._context, "data"):
            cls._context.data = {}
        cls._context.data.update(kwargs)

    @classmethod
    def clear_context(cls) -> None:
        """Clear context for the current thread."""
        cls._context.data = {}

    @classmethod
    def current(cls) -> Dict[str, Any]:
        """Copy of the current thread's context."""
        return dict(getattr(cls._context, "data", {}))

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.current().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter with fixed per-logger context.

    Values passed to get_logger() are added to every record; values
    given at the call site take precedence.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


# Global logger registry
_loggers: Dict[str, logging.Logger] = {}
_configured = False
_base_level = logging.INFO


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    console_output: bool = True
) -> None:
    """
    Set up logging for the application.

    Call once at startup; later calls are ignored.

    Args:
        log_dir: Directory for answering-machine.log and errors.log
        log_level: Level used while the settings debug flag is off
        json_format: Write the main log file as JSON lines
        console_output: Also log to stderr

    Example:
        setup_logging(log_dir="/var/log/answering-machine", json_format=True)
    """
    global _configured, _base_level

    if _configured:
        return

    _base_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(_base_level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    context_filter = ContextFilter()
    handlers = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredFormatter(use_color=sys.stderr.isatty()))
        handlers.append(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / LOG_FILE_NAME, encoding="utf-8")
        file_handler.setFormatter(
            JSONFormatter() if json_format else ColoredFormatter(use_color=False)
        )
        handlers.append(file_handler)

        error_handler = logging.FileHandler(log_path / ERROR_LOG_FILE_NAME, encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        handlers.append(error_handler)

    for handler in handlers:
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    _configured = True


def set_debug_logging(enabled: bool) -> None:
    """
    Toggle verbose logging at runtime.

    Debug records are only emitted while the settings ``debug`` flag
    is on. Turning it off restores the level chosen in setup_logging.

    Args:
        enabled: Whether debug records should be emitted
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if enabled else _base_level)


def is_debug_logging() -> bool:
    """Return True if debug records are currently emitted."""
    return logging.getLogger(ROOT_LOGGER_NAME).isEnabledFor(logging.DEBUG)


def get_logger(name: str, **extra) -> LoggerAdapter:
    """
    Get a logger for a module.

    Args:
        name: Logger name below the namespace, e.g. "rules.store"
        **extra: Fixed context added to every record

    Returns:
        LoggerAdapter instance
    """
    prefix = f"{ROOT_LOGGER_NAME}."
    full_name = name if name.startswith(ROOT_LOGGER_NAME) else prefix + name

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return LoggerAdapter(_loggers[full_name], extra)


def set_log_context(**kwargs) -> None:
    """
    Set the message context for the current thread.

    Example:
        set_log_context(network="libera", channel="#help")
        logger.info("Processing message")  # shows libera/#help
    """
    ContextFilter.set_context(**kwargs)


def clear_log_context() -> None:
    """Clear the message context for the current thread."""
    ContextFilter.clear_context()
