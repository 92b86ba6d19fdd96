"""
Core functionality for snipbox.
"""

from .config import ConfigManager, EngineConfig, ServerConfig, SnipboxConfig
from .exceptions import (
    ConfigurationError,
    ExecutionTimeoutError,
    SnipboxError,
    TranspileError,
    TranspilerUnavailableError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "EngineConfig",
    "ExecutionTimeoutError",
    "ServerConfig",
    "SnipboxConfig",
    "SnipboxError",
    "TranspileError",
    "TranspilerUnavailableError",
    "get_logger",
    "setup_logging",
]
