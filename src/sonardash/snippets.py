"""Source context around an issue.

File text comes from the raw source endpoint, or, when that call fails, from
the structured source endpoint with each line's `code` joined back together.
"""

import logging
import re

from sonardash.api.endpoints import SonarApi
from sonardash.errors import SonarDashError
from sonardash.models import Issue, Snippet, SnippetWindow

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 5
LINE_BREAK = re.compile(r"\r?\n")
FOCUS_MARKER = ">"
CONTEXT_MARKER = " "


def format_line(number: int, text: str, focus: bool) -> str:
  marker = FOCUS_MARKER if focus else CONTEXT_MARKER
  return f"{marker} {number:>4} | {text}"


def split_lines(content: str) -> list[str]:
  lines = LINE_BREAK.split(content)
  if len(lines) > 1 and lines[-1] == "":
    lines.pop()
  return lines


def build_window(content: str, focus: int, context_lines: int = DEFAULT_CONTEXT_LINES) -> SnippetWindow:
  """Window [max(1, f-r), min(L, f+r)] around a 1-based focus line.

  Focus values below 1 clamp to 1. A focus past the end of the file yields an
  empty window. Only LF and CRLF end a line, and a final newline does not
  open an extra one.
  """
  lines = split_lines(content)
  focus = max(1, focus)
  start = max(1, focus - context_lines)
  end = min(len(lines), focus + context_lines)
  code = tuple(lines[start - 1:end])
  rendered = tuple(
    format_line(n, text, n == focus) for n, text in enumerate(code, start=start)
  )
  return SnippetWindow(start=start, end=end, focus=focus, lines=rendered, code=code)


async def fetch_content(api: SonarApi, key: str) -> str | None:
  """File text via the raw endpoint, falling back to per-line records."""
  try:
    return await api.source_raw(key)
  except SonarDashError as e:
    logger.debug("Raw source failed for %s (%s), trying sources/show", key, e)

  try:
    records = await api.source_lines(key)
  except SonarDashError as e:
    logger.debug("Structured source failed for %s: %s", key, e)
    return None
  if records is None:
    return None
  return "\n".join(str(r.get("code", "")) for r in records)


async def resolve_snippet(
  api: SonarApi,
  issue: Issue,
  context_lines: int = DEFAULT_CONTEXT_LINES,
) -> Snippet | None:
  """Fetch the issue's file and cut a window around its focus line."""
  if not issue.component:
    return None

  content = await fetch_content(api, issue.component)
  if not content:
    return None

  focus = issue.focus_line
  if focus is None:
    return Snippet(content=content)
  return Snippet(content=content, window=build_window(content, focus, context_lines))
