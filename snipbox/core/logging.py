"""
Logging setup for snipbox.

All modules obtain their logger through :func:`get_logger`; the CLI and the
HTTP server call :func:`setup_logging` once at startup.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "snipbox"
_configured = False


def setup_logging(level: str | int = "INFO", console: Console | None = None) -> logging.Logger:
    """
    Attach a Rich handler to the package logger.

    Args:
        level: Log level name or number
        console: Optional console to render to (defaults to stderr)

    Returns:
        The configured package logger
    """
    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(level)

    if not _configured:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        root.propagate = False
        _configured = True

    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""
    if name != _ROOT_LOGGER and not name.startswith(f"{_ROOT_LOGGER}."):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
