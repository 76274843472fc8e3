# common/logging_config.py
# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the MongoDB node installer.

Every message is timestamped and written to the console (errors to stderr,
everything else to stdout) and duplicated to the system log. An optional
JSON-structured file log can be enabled for later inspection.

Secrets (administrator password, replica set key) are masked on every
handler before a record is formatted.
"""

import json
import logging
import logging.handlers
import os
import re
import sys
from datetime import datetime, timezone
from typing import Iterable, Optional

CONSOLE_FORMAT = "%(asctime)s :: %(message)s"
CONSOLE_ERROR_FORMAT = "%(asctime)s :: [ERROR] %(message)s"
# Same shape as `date +"%D %T"`.
CONSOLE_DATE_FORMAT = "%m/%d/%y %H:%M:%S"
SYSLOG_SOCKET = "/dev/log"
REDACTED = "****"

_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for the optional file log.

    Formats log records as JSON with a timestamp, level, service name,
    logger, message, source location and any extra fields.
    """

    def __init__(self, service_name: str = "mongo-node-installer"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.uname().nodename

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class MaxLevelFilter(logging.Filter):
    """Lets through records strictly below the given level."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


class SecretRedactingFilter(logging.Filter):
    """
    Replaces known secret values in log records with a fixed mask.

    A secret is only masked as a whole token, so a short password such as
    "0" leaves addresses like 10.0.0.1 intact.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: list[str] = []
        self._pattern: Optional[re.Pattern] = None
        for secret in secrets:
            self.add_secret(secret)

    def add_secret(self, secret: str) -> None:
        if secret and secret not in self.secrets:
            self.secrets.append(secret)
            self._pattern = self._compile(self.secrets)

    @staticmethod
    def _compile(secrets: list[str]) -> re.Pattern:
        # Longest first so a secret containing another is masked whole.
        alternatives = "|".join(
            re.escape(s) for s in sorted(secrets, key=len, reverse=True)
        )
        return re.compile(rf"(?<!\w)(?<!\w\.)(?:{alternatives})(?!\w)(?!\.\w)")

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is None:
            return True
        message = record.getMessage()
        redacted = self._pattern.sub(REDACTED, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    service_name: str,
    log_level: Optional[str] = None,
    enable_console: bool = True,
    enable_syslog: bool = True,
    enable_file: bool = False,
    log_file_path: Optional[str] = None,
    secrets: Iterable[str] = (),
) -> logging.Logger:
    """
    Set up logging for an entry point.

    Args:
        service_name: Name of the service, used as the logger name and syslog tag.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Falls back to the LOG_LEVEL environment variable, then INFO.
        enable_console: Whether to log to stdout/stderr.
        enable_syslog: Whether to duplicate messages to the system log.
        enable_file: Whether to enable the JSON file log.
        log_file_path: Path to the JSON log file (if file logging enabled).
        secrets: Values masked in every handler's output.

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    redactor = SecretRedactingFilter(secrets)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(numeric_level)
        stdout_handler.addFilter(MaxLevelFilter(logging.ERROR))
        stdout_handler.addFilter(redactor)
        stdout_handler.setFormatter(
            logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT)
        )
        root_logger.addHandler(stdout_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(max(numeric_level, logging.ERROR))
        stderr_handler.addFilter(redactor)
        stderr_handler.setFormatter(
            logging.Formatter(CONSOLE_ERROR_FORMAT, CONSOLE_DATE_FORMAT)
        )
        root_logger.addHandler(stderr_handler)

    if enable_syslog and os.path.exists(SYSLOG_SOCKET):
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=SYSLOG_SOCKET
            )
        except OSError as e:
            root_logger.warning(f"Could not attach to syslog: {e}")
        else:
            syslog_handler.setLevel(numeric_level)
            syslog_handler.addFilter(redactor)
            syslog_handler.setFormatter(
                logging.Formatter(f"{service_name}: %(message)s")
            )
            root_logger.addHandler(syslog_handler)

    if enable_file and log_file_path:
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(numeric_level)
        file_handler.addFilter(redactor)
        file_handler.setFormatter(JSONFormatter(service_name))
        root_logger.addHandler(file_handler)

    # pymongo is chatty at DEBUG; keep its topology messages out of -v output.
    for noisy in ("pymongo", "pymongo.topology", "pymongo.connection"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level,
            "console_enabled": enable_console,
            "syslog_enabled": enable_syslog,
            "file_enabled": enable_file,
        },
    )

    return logger


def add_log_secrets(secrets: Iterable[str]) -> None:
    """Mask additional secret values on every configured root handler."""
    for handler in logging.getLogger().handlers:
        for log_filter in handler.filters:
            if isinstance(log_filter, SecretRedactingFilter):
                for secret in secrets:
                    log_filter.add_secret(secret)
