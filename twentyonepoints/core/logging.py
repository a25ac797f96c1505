import logging
import sys
from typing import List, Optional

ROOT_LOGGER_NAME = "twentyonepoints"

DEFAULT_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in ANSI colours."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not color:
            return super().format(record)

        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def configure_logging(
    level: str = "INFO",
    fmt: Optional[str] = None,
    colored: bool = True,
    custom_formatter: Optional[logging.Formatter] = None,
    custom_handlers: Optional[List[logging.Handler]] = None,
):
    """
    Configure the root logger.

    Replaces any handlers already installed so repeated application
    startups (e.g. in tests) do not duplicate output.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if custom_formatter is not None:
        formatter = custom_formatter
    elif colored and sys.stderr.isatty():
        formatter = ColoredFormatter(fmt or DEFAULT_FORMAT)
    else:
        formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    handlers = custom_handlers or [logging.StreamHandler(sys.stderr)]
    for handler in handlers:
        if handler.formatter is None:
            handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.setLevel(level.upper())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger inside the twentyonepoints namespace."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
