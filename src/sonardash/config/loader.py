"""Configuration file loading and layering.

Precedence, lowest first: config file, environment, command-line flags.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sonardash.config.settings import CONFIG_KEYS, DEFAULT_HOST, Settings
from sonardash.errors import ConfigError

logger = logging.getLogger(__name__)

APP_DIR = "sonardash"
CONFIG_FILENAME = "config.yaml"
ENV_VARS = {
  "token": "SONARDASH_TOKEN",
  "project": "SONARDASH_PROJECT",
  "host": "SONARDASH_HOST",
  "branch": "SONARDASH_BRANCH",
}


@dataclass(frozen=True)
class LoadedConfig:
  """Raw layers before merging."""

  file_config: dict[str, Any] = field(default_factory=dict)
  env_config: dict[str, str] = field(default_factory=dict)
  used_file: Path | None = None


def default_config_path() -> Path:
  base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
  return Path(base) / APP_DIR / CONFIG_FILENAME


def resolve_config_path(config_path: Path | str | None = None) -> Path:
  """Absolute path of the config file in effect."""
  if config_path:
    path = Path(config_path)
    return path if path.is_absolute() else Path.cwd() / path
  return default_config_path()


def _read_file(path: Path) -> dict[str, Any]:
  """Parse a YAML (or JSON) mapping; anything unreadable counts as empty."""
  if not path.exists():
    return {}
  try:
    with open(path, encoding="utf-8") as f:
      data = yaml.safe_load(f)
  except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
    logger.warning("Failed to parse config file %s: %s", path, e)
    return {}
  if data is None:
    return {}
  if not isinstance(data, dict):
    logger.warning("Ignoring config file %s: top level is not a mapping", path)
    return {}
  return data


def _read_env() -> dict[str, str]:
  env = {}
  for key, var in ENV_VARS.items():
    value = os.environ.get(var)
    if value:
      env[key] = value
  return env


def load_config(config_path: Path | str | None = None) -> LoadedConfig:
  """Load the file and environment layers."""
  path = resolve_config_path(config_path)
  file_config = _read_file(path)
  return LoadedConfig(
    file_config=file_config,
    env_config=_read_env(),
    used_file=path if file_config else None,
  )


def build_runtime_config(
  loaded: LoadedConfig,
  token: str | None = None,
  project: str | None = None,
  host: str | None = None,
  branch: str | None = None,
  json_output: bool = False,
) -> Settings:
  """Merge layers into Settings; flags win, then env, then file."""
  merged: dict[str, Any] = {
    k: v for k, v in loaded.file_config.items() if k in CONFIG_KEYS and v not in (None, "")
  }
  merged.update(loaded.env_config)
  flags = {"token": token, "project": project, "host": host, "branch": branch}
  merged.update({k: v for k, v in flags.items() if v})
  if not merged.get("host"):
    merged["host"] = DEFAULT_HOST
  merged = {k: str(v) for k, v in merged.items()}
  return Settings(**merged, json_output=json_output)


def write_config(
  updates: dict[str, str],
  config_path: Path | str | None = None,
) -> tuple[Path, dict[str, Any]]:
  """Merge updates into the config file, creating it if needed."""
  unknown = [k for k in updates if k not in CONFIG_KEYS]
  if unknown:
    raise ConfigError(
      f"Unknown config key(s): {', '.join(unknown)}. Valid keys: {', '.join(CONFIG_KEYS)}"
    )

  path = resolve_config_path(config_path)
  path.parent.mkdir(parents=True, exist_ok=True)
  merged = {**_read_file(path), **updates}
  with open(path, "w", encoding="utf-8") as f:
    yaml.safe_dump(merged, f, default_flow_style=False, sort_keys=False)
  return path, merged
