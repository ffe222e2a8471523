"""Configuration management."""

from sonardash.config.loader import (
  LoadedConfig,
  build_runtime_config,
  load_config,
  resolve_config_path,
  write_config,
)
from sonardash.config.settings import Settings, redact

__all__ = [
  "LoadedConfig",
  "Settings",
  "build_runtime_config",
  "load_config",
  "redact",
  "resolve_config_path",
  "write_config",
]
