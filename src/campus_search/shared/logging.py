"""
Logging Module - Rich console logging for search and ingestion.
===============================================================

Log records go to a RichHandler on the shared console (the CLI prints its
tables on the same console, so progress bars and logs do not interleave)
and optionally to a plain-text file for long reindex jobs.

Loggers obtained before configuration get a default setup from LOG_LEVEL;
setup_logging_from_settings() replaces it once settings are available.
"""

import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Client libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("elasticsearch", "elastic_transport", "urllib3")

_console = Console()
_configured = False


def _level_number(level: str) -> int:
    value = getattr(logging, level.upper(), None)
    return value if isinstance(value, int) else logging.INFO


def _build_handlers(
    level: int,
    use_rich: bool,
    log_file: Optional[str],
    log_format: str,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if use_rich:
        console_handler: logging.Handler = RichHandler(
            console=_console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(
    level: str = "INFO",
    use_rich: bool = True,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_rich: Log to the Rich console instead of plain stderr
        log_file: Optional path of a log file
        log_format: Format for plain-text handlers
        force: Replace an existing configuration

    Without force, only the first call has an effect.
    """
    global _configured

    if _configured and not force:
        return

    numeric_level = _level_number(level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(numeric_level)
    for handler in _build_handlers(numeric_level, use_rich, log_file, log_format or DEFAULT_FORMAT):
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, rich={use_rich}, file={log_file}"
    )


def setup_logging_from_settings() -> None:
    """(Re)configure logging from the application settings."""
    from campus_search.shared.config import get_settings

    settings = get_settings()
    setup_logging(
        level=settings.get_effective_log_level(),
        use_rich=settings.logging.rich_console,
        log_file=settings.logging.file or None,
        log_format=settings.logging.format,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger, configuring defaults on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Reindex started")
    """
    if not _configured:
        setup_logging(level=os.environ.get("LOG_LEVEL", "INFO"))
    return logging.getLogger(name)


def get_console() -> Console:
    """The console shared by log output and CLI rendering."""
    return _console


@contextmanager
def log_level(level: str, logger_name: Optional[str] = None) -> Iterator[logging.Logger]:
    """
    Temporarily set the level of one logger (root if None).

    Example:
        >>> with log_level("WARNING", "campus_search"):
        ...     orchestrator.search("cs2500", "202010")
    """
    target = logging.getLogger(logger_name)
    previous = target.level
    target.setLevel(_level_number(level))
    try:
        yield target
    finally:
        target.setLevel(previous)
