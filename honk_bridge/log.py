"""
Logging setup for applications embedding honk-bridge

The library itself only creates module loggers; nothing is configured on
import. Applications call :func:`setup_logging` once at startup.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig, LogLevel

PACKAGE_LOGGER = "honk_bridge"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    config: Optional[LoggingConfig] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach handlers to the package logger according to ``config``.

    Calling it again replaces the handlers installed by a previous call.
    """
    config = config or LoggingConfig()
    level = LogLevel(config.level).value

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
        existing.close()

    if config.rich:
        handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True), rich_tracebacks=True
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
    package_logger.addHandler(handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        package_logger.addHandler(file_handler)

    return package_logger


__all__ = ["setup_logging", "PACKAGE_LOGGER"]
