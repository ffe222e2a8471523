"""Error taxonomy."""


class SonarDashError(Exception):
  """Base for all sonardash errors."""


class ConfigError(SonarDashError):
  """Required configuration is missing or invalid."""


class TransportError(SonarDashError):
  """Network-level failure (DNS, timeout, connection refused)."""

  def __init__(self, cause: Exception):
    self.cause = cause
    super().__init__(f"{type(cause).__name__}: {cause}" if str(cause) else type(cause).__name__)


class ApiError(SonarDashError):
  """Server answered with a non-success HTTP status."""

  def __init__(self, status_code: int, body: str = ""):
    self.status_code = status_code
    self.body = body
    super().__init__(f"Request failed with status {status_code}")


class NotFoundError(SonarDashError):
  """Entity absent in a by-key lookup."""


class RenderDegradation(SonarDashError):
  """A sub-fetch failed inside the browser; the UI keeps running."""

  def __init__(self, placeholder: str, cause: Exception | None = None):
    self.placeholder = placeholder
    self.cause = cause
    super().__init__(placeholder)
