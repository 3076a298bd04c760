"""
TimeStake Logging System
========================

A thread-safe logging utility for the ledger. It wires the standard Python
`logging` library to the `rich` console handler and a rotating log file, and
sanitizes every record before it reaches a terminal or disk.

Usage:
    >>> from timestake.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Ledger started")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "timestake.log"


class LogManager:
    """
    Manages logging configuration via the Singleton pattern.

    The logging subsystem is initialized exactly once, with a 'Rich' console
    handler and a rotating file handler.

    Attributes:
        _instance (LogManager): The singleton instance.
        _lock (threading.Lock): Thread lock for atomic initialization.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        """Creates or returns the existing singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._handlers: List[logging.Handler] = []
        self._initialized = True

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates a logging format string by formatting a dummy record.

        Args:
            log_format (str): The logging format string.

        Returns:
            str: The validated format string, or the default `LOG_FORMAT`.
        """
        if not log_format:
            return str(LOG_FORMAT.default())
        try:
            formatter = logging.Formatter(fmt=str(log_format))
            record = logging.LogRecord(
                name="test", level=logging.INFO, pathname="", lineno=0,
                msg="test", args=(), exc_info=None,
            )
            formatter.format(record)
            return str(log_format)
        except (ValueError, KeyError, TypeError) as e:
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - timestake.logger - "
                f"Invalid log format ({e}). Using default.",
                file=sys.stderr,
            )
            return str(LOG_FORMAT.default())

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """
        Validates a strftime date format string.

        Args:
            date_format (str): The date format string (e.g., "%Y-%m-%d").

        Returns:
            str: The validated date format string, or the default.
        """
        date_format_pattern = re.compile(
            r"^(?=.*%[A-Za-z])(?:%%|%[-_0^#]*[A-Za-z]|[0-9 \t:\-\/\.,TZ+])+$"
        )
        if not date_format or not date_format_pattern.match(str(date_format)):
            return str(LOG_DATE_FORMAT.default())
        return str(date_format)

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Configures the root logger with console and file handlers.

        Args:
            log_level (Optional[str]): Logging level (DEBUG, INFO, etc.).
            log_file (Optional[Path]): Path to log file. Defaults to `logs/timestake.log`.
            console_output (bool): Enable console logging.
            file_output (Optional[bool]): Enable rotating file logging. Defaults to LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)
            root_logger.handlers.clear()
            self._handlers.clear()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            # UTC timestamps regardless of host timezone
            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    theme = Theme(
                        {
                            "timestake.address":        "cyan",
                            "timestake.amount":         "bold white",
                            "timestake.level_critical": "bold red reverse",
                            "timestake.level_debug":    "bold dim",
                            "timestake.level_error":    "bold red",
                            "timestake.level_info":     "bold green",
                            "timestake.level_warning":  "bold yellow",
                            "timestake.logger_name":    "magenta",
                            "timestake.proposal":       "bold blue",
                            "timestake.server_id":      "bold cyan",
                            "timestake.timestamp":      "bold cyan",
                        }
                    )
                    handler = RichHandler(
                        console=Console(theme=theme, highlight=False),
                        highlighter=LedgerLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                else:
                    handler = logging.StreamHandler(sys.stdout)
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                root_logger.addHandler(handler)
                self._handlers.append(handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)

            if file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
                self._handlers.append(file_handler)

            self._configured = True

    def set_level(self, log_level: str) -> None:
        """
        Changes the level of the root logger and of the handlers installed
        by `configure`.

        Args:
            log_level (str): Logging level name (DEBUG, INFO, etc.).
        """
        numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
        with self._lock:
            logging.getLogger().setLevel(numeric_level)
            for handler in self._handlers:
                handler.setLevel(numeric_level)

    def get_logger(self, name: str) -> logging.Logger:
        """Retrieves a logger, configuring the subsystem on first use."""
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escape sequences and control characters.

    Server ids, region names and parameter names are caller supplied, so every
    formatted record goes through `sanitize` (CWE-117).
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) excluding Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
    _carriage_return_re = re.compile(r"\r")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        text = cls._carriage_return_re.sub("", text)
        text = cls._control_chars_re.sub("", text)
        return text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class LedgerLogHighlighter(RegexHighlighter):
    """Highlights ledger identifiers in console output."""

    base_style = "timestake."
    highlights = [
        r"(?P<server_id>0x[0-9a-fA-F]{64})",
        r"(?P<address>(?<![0-9a-fA-Fx])0x[0-9a-fA-F]{40}(?![0-9a-fA-F]))",
        r"(?P<amount>\b\d+(?:\.\d+)?\s+TIME\b)",
        r"(?P<proposal>Proposal #\d+)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.

    Args:
        name (str): The name of the module requesting the logger.

    Returns:
        logging.Logger: The configured logger instance.
    """
    return _manager.get_logger(name)

def set_log_level(log_level: str) -> None:
    """Applies a configured log level to the running logging system."""
    _manager.set_level(log_level)

_manager.configure()
