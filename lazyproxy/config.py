"""Configuration for proxy synthesis and logging."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lazyproxy.errors import ConfigError

CONFIG_ENV_VAR = "LAZYPROXY_CONFIG"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    debug_mode: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level


class SynthesisSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type_name_prefix: str = Field(default="LazyProxyImpl", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    validate_type_arguments: bool = True


class Config(BaseModel):
    """Top-level settings, loadable from a YAML file."""

    model_config = ConfigDict(extra="forbid")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    synthesis: SynthesisSettings = Field(default_factory=SynthesisSettings)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load settings from ``path`` or ``$LAZYPROXY_CONFIG``; defaults when absent."""
        if path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
            if not env_path:
                return cls()
            path = Path(env_path)

        path = Path(path).expanduser()
        if not path.exists():
            return cls()

        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"{path} must contain a mapping, got {type(payload).__name__}")

        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration in {path}: {exc}") from exc
