"""Diagnostic logging setup.

Logs go to stderr through rich so they never mix with command output.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV_VAR = "SONARDASH_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def _level_from_env() -> int:
  name = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
  return getattr(logging, name, logging.WARNING)


def configure_logging(debug: bool = False) -> None:
  """Install a rich stderr handler on the package logger."""
  logger = logging.getLogger("sonardash")
  logger.handlers.clear()
  logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
  logger.setLevel(logging.DEBUG if debug else _level_from_env())
