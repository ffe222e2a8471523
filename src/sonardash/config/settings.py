"""Runtime settings."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from sonardash.errors import ConfigError

DEFAULT_HOST = "https://sonarqube.example.com"
CONFIG_KEYS = ("token", "project", "host", "branch")
REDACTED = "***"


def redact(data: dict[str, Any]) -> dict[str, Any]:
  """Copy of a config mapping with a non-empty token masked."""
  out = dict(data)
  if out.get("token"):
    out["token"] = REDACTED
  return out


class Settings(BaseModel):
  """Resolved runtime configuration for one command."""

  model_config = ConfigDict(extra="ignore")

  host: str = DEFAULT_HOST
  token: str | None = None
  project: str | None = None
  branch: str | None = None
  json_output: bool = False

  def require(self, *fields: str) -> None:
    """Raise ConfigError for the first empty field."""
    for name in fields:
      if not getattr(self, name):
        raise ConfigError(f"Missing {name} (set via config, env, or --{name})")

  def redacted(self) -> dict[str, Any]:
    data = self.model_dump(exclude={"json_output"})
    data["json"] = self.json_output
    return redact(data)
