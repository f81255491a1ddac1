"""
Logging Configuration Module.

Every engine logger lives under the "field_extraction" namespace. Records
carry the name of the document being processed (``%(document)s`` in the
format), set per thread by document_context(), so lines emitted by
concurrent extractions can be told apart.

Usage:
    from field_extraction.utils.logger import get_logger, document_context

    logger = get_logger(__name__)

    with document_context("facture.pdf"):
        logger.info("Extracting fields...")

Author: ML Engineering Team
"""

import logging
import logging.handlers
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import colorama
from colorama import Fore, Style

colorama.init()

LOGGER_NAMESPACE = "field_extraction"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(document)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_DOCUMENT = "-"

_context = threading.local()


@contextmanager
def document_context(name: str) -> Iterator[None]:
    """
    Tag the records of the current thread with a document name.

    Contexts nest; the previous name is restored on exit.
    """
    previous = getattr(_context, 'document', NO_DOCUMENT)
    _context.document = name or NO_DOCUMENT
    try:
        yield
    finally:
        _context.document = previous


def current_document() -> str:
    return getattr(_context, 'document', NO_DOCUMENT)


class DocumentContextFilter(logging.Filter):
    """Adds the ``document`` attribute used by the log format."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.document = current_document()
        return True


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colors the level name only.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR / CRITICAL: Red, CRITICAL in bold
    """

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{original:<8}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logger(settings: Optional[Dict[str, Any]] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the namespace logger from a ``logging`` settings section.

    Handlers already attached to the namespace are replaced, so calling
    this again (e.g. after loading another configuration) does not
    duplicate output.

    Args:
        settings: Mapping shaped like the ``logging`` section of
            settings.yaml. Missing keys take the defaults.
        level: Overrides ``settings['level']`` (the CLI's --debug and
            --quiet flags).

    Returns:
        The configured namespace logger.

    Example:
        >>> setup_logger({"level": "DEBUG", "file": {"enabled": True, "path": "logs/run.log"}})
    """
    settings = settings or {}
    log_level = getattr(logging, (level or settings.get('level') or "INFO").upper())
    log_format = settings.get('format') or DEFAULT_FORMAT
    date_format = settings.get('date_format') or DEFAULT_DATE_FORMAT
    colorize = (settings.get('console') or {}).get('colorize', True)
    file_settings = settings.get('file') or {}

    namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
    namespace_logger.setLevel(log_level)
    namespace_logger.handlers.clear()
    namespace_logger.propagate = False

    formatter_class = ColoredFormatter if colorize else logging.Formatter
    handlers = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(formatter_class(log_format, datefmt=date_format))

    if file_settings.get('enabled') and file_settings.get('path'):
        log_path = Path(file_settings['path'])
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=file_settings.get('max_bytes', 10485760),
            backupCount=file_settings.get('backup_count', 5),
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(DocumentContextFilter())
        namespace_logger.addHandler(handler)

    namespace_logger.debug(f"Logging initialized at {logging.getLevelName(log_level)}")
    return namespace_logger


def setup_logger_from_config(level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging from the ``logging`` configuration section.

    Args:
        level: Optional level overriding the configured one.
    """
    from config import ConfigurationManager

    return setup_logger(ConfigurationManager().section('logging'), level=level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the engine namespace.

    Args:
        name: Typically __name__; prefixed with the namespace when needed.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Processing started")
    """
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
