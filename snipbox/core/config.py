"""
Configuration management for snipbox.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

# Pure-computation stdlib modules a snippet may import.
DEFAULT_ALLOWED_MODULES = [
    "bisect",
    "collections",
    "datetime",
    "decimal",
    "fractions",
    "functools",
    "heapq",
    "itertools",
    "json",
    "math",
    "operator",
    "random",
    "re",
    "statistics",
    "string",
    "textwrap",
]


@dataclass
class EngineConfig:
    """Execution engine configuration."""

    deadline_seconds: float = 1.5
    max_deadline_seconds: float = 10.0
    max_output_chars: int = 50_000
    allowed_modules: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_MODULES))

    def validate(self) -> None:
        if self.deadline_seconds <= 0:
            raise ConfigurationError(
                f"engine.deadline_seconds must be positive, got {self.deadline_seconds}"
            )
        if self.max_deadline_seconds < self.deadline_seconds:
            raise ConfigurationError(
                "engine.max_deadline_seconds must be >= engine.deadline_seconds"
            )
        if self.max_output_chars <= 0:
            raise ConfigurationError(
                f"engine.max_output_chars must be positive, got {self.max_output_chars}"
            )

    def clamp_deadline(self, requested: float | None) -> float:
        """Return the deadline for one run, bounded by ``max_deadline_seconds``."""
        if requested is None or requested <= 0:
            return self.deadline_seconds
        return min(float(requested), self.max_deadline_seconds)


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 5000
    max_body_bytes: int = 1_048_576


@dataclass
class SnipboxConfig:
    """Top-level configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    @classmethod
    def load_from_file(cls, config_path: Path) -> "SnipboxConfig":
        """Load configuration from file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return cls.from_mapping(data or {})

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SnipboxConfig":
        """Build configuration from a plain mapping."""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        data = data.copy()
        try:
            engine_data = data.pop("engine", None) or {}
            server_data = data.pop("server", None) or {}
            if not isinstance(engine_data, dict) or not isinstance(server_data, dict):
                raise ConfigurationError("'engine' and 'server' sections must be mappings")
            config = cls(
                engine=EngineConfig(**engine_data),
                server=ServerConfig(**server_data),
                **data,
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

        config.engine.validate()
        return config

    def apply_env(self, environ: dict[str, str] | None = None) -> "SnipboxConfig":
        """Apply environment overrides in place."""
        environ = os.environ if environ is None else environ

        deadline = environ.get("SNIPBOX_DEADLINE_SECONDS")
        if deadline:
            try:
                self.engine.deadline_seconds = float(deadline)
            except ValueError as e:
                raise ConfigurationError(
                    f"SNIPBOX_DEADLINE_SECONDS must be a number, got {deadline!r}"
                ) from e
            if self.engine.max_deadline_seconds < self.engine.deadline_seconds:
                self.engine.max_deadline_seconds = self.engine.deadline_seconds

        port = environ.get("PORT")
        if port:
            try:
                self.server.port = int(port)
            except ValueError as e:
                raise ConfigurationError(f"PORT must be an integer, got {port!r}") from e

        level = environ.get("SNIPBOX_LOG_LEVEL")
        if level:
            self.log_level = level.upper()

        self.engine.validate()
        return self


class ConfigManager:
    """Manages snipbox configuration."""

    CONFIG_FILENAME = "snipbox.yaml"

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root or Path.cwd()
        self.config_path = self.project_root / self.CONFIG_FILENAME
        self._config: SnipboxConfig | None = None

    @property
    def config(self) -> SnipboxConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load_config()
        return self._config

    def load_config(self) -> SnipboxConfig:
        """Load configuration from file, falling back to defaults."""
        if self.config_path.exists():
            self._config = SnipboxConfig.load_from_file(self.config_path)
        else:
            self._config = SnipboxConfig()
        self._config.apply_env()
        return self._config
