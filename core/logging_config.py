"""
Centralized logging configuration for the course design assistant client.

Console output goes to stderr so it never interleaves with the chat transcript
on stdout. Production deployments switch to JSON lines via ENVIRONMENT=production.
Every record carries the id of the active conversation once one exists.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

_active_session_id: Optional[str] = None


def set_log_session(session_id: Optional[str]) -> None:
    """Tag subsequent records with the given conversation id (None to clear)"""
    global _active_session_id
    _active_session_id = session_id


class SessionContextFilter(logging.Filter):
    """Stamps record.session_id with the active conversation id"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _active_session_id
        return True


class StructuredFormatter(logging.Formatter):
    """JSON lines for log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "session_id": getattr(record, "session_id", None),
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Context attached with extra={"extra_data": {...}}
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["context"] = extra_data

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short colored lines for an interactive terminal"""

    LEVEL_COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[95m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(level, '')}{level}{self.RESET}"

        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        session_id = getattr(record, "session_id", None)
        session = f" <{session_id[:8]}>" if session_id else ""

        line = f"{stamp} {level} {record.name}{session}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LoggingConfig:
    """Builds the root logger's handlers from a LOGGING_CONFIG-style dict"""

    # Library loggers capped so request chatter stays out of the transcript
    QUIET_LOGGERS = ("aiohttp", "asyncio", "urllib3")

    def __init__(self,
                 log_level: str = "INFO",
                 log_dir: Optional[str] = None,
                 enable_file_logging: bool = True,
                 enable_console_logging: bool = True,
                 structured_logging: bool = False,
                 max_log_size_mb: int = 10,
                 backup_count: int = 5):
        """
        Args:
            log_level: Logging level name
            log_dir: Directory for course_assistant.log and errors.log
            enable_file_logging: Write rotating log files
            enable_console_logging: Write to stderr
            structured_logging: JSON lines instead of text
            max_log_size_mb: Rotation threshold per file
            backup_count: Rotated files kept per log
        """
        self.log_level = logging.getLevelName(str(log_level).upper())
        if not isinstance(self.log_level, int):
            self.log_level = logging.INFO
        self.log_dir = Path(log_dir or "./logs")
        self.enable_file_logging = enable_file_logging
        self.enable_console_logging = enable_console_logging
        self.structured_logging = structured_logging
        self.max_bytes = max_log_size_mb * 1024 * 1024
        self.backup_count = backup_count

    def configure(self) -> None:
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            if getattr(handler, "_course_assistant", False):
                root_logger.removeHandler(handler)
                handler.close()
        root_logger.setLevel(self.log_level)

        session_filter = SessionContextFilter()

        if self.enable_console_logging:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(self.log_level)
            console.setFormatter(StructuredFormatter() if self.structured_logging
                                 else ConsoleFormatter(use_color=sys.stderr.isatty()))
            self._attach(root_logger, console, session_filter)

        if self.enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_formatter = StructuredFormatter() if self.structured_logging else logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [%(session_id)s] %(message)s"
            )
            for filename, level in (("course_assistant.log", self.log_level), ("errors.log", logging.ERROR)):
                handler = logging.handlers.RotatingFileHandler(
                    self.log_dir / filename,
                    maxBytes=self.max_bytes,
                    backupCount=self.backup_count,
                    encoding="utf-8"
                )
                handler.setLevel(level)
                handler.setFormatter(file_formatter)
                self._attach(root_logger, handler, session_filter)

        for name in self.QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        logging.getLogger(__name__).debug("Logging configured", extra={"extra_data": {
            "level": logging.getLevelName(self.log_level),
            "file_logging": self.enable_file_logging,
            "structured": self.structured_logging,
        }})

    @staticmethod
    def _attach(root_logger: logging.Logger, handler: logging.Handler, session_filter: logging.Filter):
        handler._course_assistant = True
        handler.addFilter(session_filter)
        root_logger.addHandler(handler)


_logging_config: Optional[LoggingConfig] = None


def setup_logging(config_dict: Optional[Dict[str, Any]] = None) -> None:
    """
    Configure logging from config_dict, or from LOGGING_CONFIG when omitted.

    Calling it again replaces the handlers installed by the previous call.
    """
    global _logging_config

    if config_dict is None:
        from config import LOGGING_CONFIG
        config_dict = LOGGING_CONFIG

    _logging_config = LoggingConfig(**config_dict)
    _logging_config.configure()


def get_logger(name: str) -> logging.Logger:
    """Get a logger, configuring logging from LOGGING_CONFIG on first use"""
    if _logging_config is None:
        setup_logging()

    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    logger.log(level, message, extra={"extra_data": context})


def log_api_call(logger: logging.Logger, service: str, endpoint: str,
                 status_code: Optional[int], duration_ms: float, **context) -> None:
    """Record one request to the assistant service; failures are logged at WARNING"""
    level = logging.INFO if status_code is not None and status_code < 400 else logging.WARNING
    outcome = status_code if status_code is not None else "no response"
    log_with_context(logger, level, f"{service} {endpoint} -> {outcome} in {duration_ms:.0f}ms",
                     service=service, endpoint=endpoint, status_code=status_code,
                     duration_ms=round(duration_ms, 1), **context)


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context) -> None:
    """Log an unexpected exception with its traceback and operation context"""
    logger.error(f"Unexpected error in {operation}: {error}", exc_info=error, extra={"extra_data": {
        "operation": operation,
        "error_type": type(error).__name__,
        **context
    }})
