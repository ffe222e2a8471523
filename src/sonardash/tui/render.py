"""Text for the browser panes."""

from typing import Sequence

from rich.syntax import Syntax
from rich.text import Text

from sonardash.models import Issue, IssueStatus, Severity, Snippet, label

ROW_MESSAGE_WIDTH = 50
TYPE_WIDTH = 11
RULE_WIDTH = 50
ELLIPSIS = "…"

LOADING = "Loading code snippet..."
NO_SNIPPET = "(no snippet)"
CODE_THEME = "monokai"
PLAIN_LEXER = "default"

SEVERITY_STYLES = {
  Severity.BLOCKER: "red",
  Severity.CRITICAL: "magenta",
  Severity.MAJOR: "yellow",
  Severity.MINOR: "green",
  Severity.INFO: "blue",
}

STATUS_STYLES = {
  IssueStatus.OPEN: "green",
  IssueStatus.CONFIRMED: "green",
  IssueStatus.REOPENED: "yellow",
  IssueStatus.RESOLVED: "cyan",
  IssueStatus.CLOSED: "bright_black",
}


def truncate(text: str, width: int) -> str:
  return text[: width - 1] + ELLIPSIS if len(text) > width else text


def issue_row(issue: Issue) -> Text:
  """Single list line: severity, padded type, truncated message."""
  row = Text()
  row.append(label(issue.severity), style=SEVERITY_STYLES.get(issue.severity, ""))
  row.append(" ")
  row.append(label(issue.type).ljust(TYPE_WIDTH))
  row.append(" ")
  row.append(truncate(issue.display_message, ROW_MESSAGE_WIDTH))
  return row


def list_title(count: int, branch: str | None) -> str:
  return f"Issues ({count})" + (f" [{branch}]" if branch else "")


def issue_detail(issue: Issue, branch: str | None = None) -> Text:
  """Detail pane body in fixed order: meta, location, range, flow, message."""
  body = Text()
  body.append(label(issue.severity), style="bold " + SEVERITY_STYLES.get(issue.severity, ""))
  body.append("  ")
  body.append(label(issue.type), style="magenta")
  if issue.status:
    body.append("  ")
    body.append(label(issue.status), style=STATUS_STYLES.get(issue.status, ""))
  if branch:
    body.append(f"  [{branch}]", style="bright_black")
  body.append("  ")
  body.append(issue.key, style="cyan")

  if issue.component:
    body.append("\n")
    body.append(issue.component, style="blue")
    if issue.line:
      body.append(f":{issue.line}")

  if issue.text_range:
    body.append(
      f"\nLines: {issue.text_range.start_line}-{issue.text_range.end_line}",
      style="bright_black",
    )

  steps = [f.first for f in issue.flows if f.first]
  if steps:
    body.append("\nFlow:", style="cyan")
    for n, loc in enumerate(steps, start=1):
      line = loc.text_range.start_line if loc.text_range else "?"
      body.append(f"\n  {n}. {loc.message} (")
      body.append(f"{loc.component}:{line}", style="bright_black")
      body.append(")")

  body.append("\n" + "─" * RULE_WIDTH, style="bright_black")
  body.append("\n")
  body.append(issue.display_message, style="bold yellow")
  return body


def guess_lexer(component: str | None) -> str:
  """Pygments lexer name from the file extension; "default" when unknown."""
  if not component:
    return PLAIN_LEXER
  _, _, path = component.rpartition(":")
  return Syntax.guess_lexer(path)


def _highlight(code: Sequence[str], lexer: str) -> list[Text]:
  syntax = Syntax("", lexer, theme=CODE_THEME, background_color="default")
  lines = syntax.highlight("\n".join(code)).split("\n", allow_blank=True)
  if len(lines) != len(code):
    return [Text(c) for c in code]
  return list(lines)


def snippet_text(snippet: Snippet | None, component: str | None = None) -> Text:
  """Code pane body; never blank.

  Source text is coloured by the lexer for `component`. Windows without bare
  code lines are shown as plain text.
  """
  if snippet is None or snippet.window is None or not snippet.window.lines:
    return Text(NO_SNIPPET, style="dim")
  window = snippet.window
  code = window.code if len(window.code) == len(window.lines) else None
  highlighted = _highlight(code, guess_lexer(component)) if code else None

  text = Text()
  for i, line in enumerate(window.lines):
    if i:
      text.append("\n")
    if highlighted is None:
      row = Text(line)
    else:
      row = Text(line[: len(line) - len(code[i])])
      row.append_text(highlighted[i])
    if window.start + i == window.focus:
      row.stylize("bold reverse")
    text.append_text(row)
  return text
