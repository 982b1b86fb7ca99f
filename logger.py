"""Structured logging infrastructure with verbosity levels and progress tracking."""

import copy
import logging
import logging.handlers
import time
from typing import Any, Dict, Optional

import colorlog

LOGGER_NAME = 'portfolio_export'


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with configurable verbosity levels.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path to log file
        log_format: Optional custom log format string
        date_format: Optional custom date format string
        level: Optional explicit log level string

    Returns:
        Configured logger instance
    """
    if level:
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level_upper = level.upper()
        if level_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{level}'. Must be one of: {sorted(allowed_levels)}"
            )
        log_level = getattr(logging, level_upper)
    elif verbosity >= 2:
        log_level = logging.DEBUG
    elif verbosity >= 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    if date_format is None:
        date_format = '%Y-%m-%d %H:%M:%S'

    # Root stays at WARNING so aiohttp and asyncio stay quiet
    logging.basicConfig(level=logging.WARNING, format=log_format, datefmt=date_format)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {e}")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")

    logger.debug(f"Log level: {logging.getLevelName(log_level)}")
    return logger


class ProgressTracker:
    """
    Context manager counting work through one phase of the export.

    Progress is logged every ``log_every`` items; leaving the block logs a
    summary, and an exception leaving the block is reported as an abort.
    """

    def __init__(self, total_items: int, item_type: str = "items",
                 logger: Optional[logging.Logger] = None, log_every: int = 10):
        self.total_items = total_items
        self.item_type = item_type
        self.log_every = max(1, log_every)
        self.done = 0
        self.start_time: Optional[float] = None
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Starting {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = format_elapsed(time.time() - (self.start_time or time.time()))
        if exc_type is not None:
            self.logger.error(f"{self.item_type.capitalize()} aborted after {self.done}/{self.total_items} "
                              f"({elapsed})")
        else:
            self.logger.info(f"{self.item_type.capitalize()} done: {self.done}/{self.total_items} in {elapsed}")

    def increment(self) -> None:
        self.done += 1
        if self.done % self.log_every == 0:
            self.logger.debug(f"{self.done}/{self.total_items} {self.item_type}")


def format_elapsed(seconds: float) -> str:
    """Human-readable duration: ``4.2s``, ``3m 5s`` or ``1h 2m 3s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    return f"{minutes // 60}h {minutes % 60}m {secs}s"


def log_section(title: str) -> None:
    """Log a banner line around ``title``."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("=" * 60)
    logger.info(f"  {title.upper()}")
    logger.info("=" * 60)


SECRET_KEYS = ('password', 'token', 'secret')


def redact(config: Any) -> Any:
    """Copy of ``config`` with non-empty secret values replaced."""
    if isinstance(config, dict):
        return {
            key: '***' if any(s in str(key).lower() for s in SECRET_KEYS) and isinstance(value, str) and value
            else redact(value)
            for key, value in config.items()
        }
    if isinstance(config, list):
        return [redact(item) for item in config]
    return copy.deepcopy(config)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective configuration, secrets masked."""
    logger = logging.getLogger(LOGGER_NAME)
    safe = redact(config)
    log_section("Configuration")

    for label, path in [
        ("Backend URL", 'backend.url'),
        ("Backend token", 'backend.token'),
        ("Backend identity", 'backend.identity'),
        ("Site URL", 'site.url'),
        ("Output directory", 'export.output_directory'),
        ("Static directory", 'export.static_directory'),
        ("Asset cache", 'assets.cache_directory'),
        ("Download concurrency", 'assets.concurrency'),
        ("Build styles", 'styles.enabled'),
        ("Preview port", 'preview.port'),
    ]:
        value = safe
        for key in path.split('.'):
            value = value.get(key) if isinstance(value, dict) else None
        logger.info(f"{label}: {'Not set' if value in (None, '') else value}")


__all__ = [
    'LOGGER_NAME',
    'ProgressTracker',
    'format_elapsed',
    'log_config',
    'log_section',
    'redact',
    'setup_logging'
]
