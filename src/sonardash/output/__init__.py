"""Output formatting."""

from sonardash.output.formatter import (
  JsonFormatter,
  OutputFormatter,
  TextFormatter,
  get_formatter,
)

__all__ = [
  "OutputFormatter",
  "TextFormatter",
  "JsonFormatter",
  "get_formatter",
]
