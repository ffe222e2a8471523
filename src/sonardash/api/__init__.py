"""REST API access."""

from sonardash.api.client import ApiClient
from sonardash.api.endpoints import SonarApi

__all__ = ["ApiClient", "SonarApi", "connect"]


def connect(host: str, token: str) -> SonarApi:
  """Build an API facade over a fresh client."""
  return SonarApi(ApiClient(host, token))
