"""Tests for browser pane text."""

from conftest import make_issue_dict
from rich.style import Style
from sonardash.models import Issue, Snippet, SnippetWindow
from sonardash.snippets import build_window
from sonardash.tui.render import (
  LOADING,
  NO_SNIPPET,
  guess_lexer,
  issue_detail,
  issue_row,
  list_title,
  snippet_text,
  truncate,
)


class TestIssueRow:
  def test_row_layout(self, issues: list[Issue]) -> None:
    assert issue_row(issues[0]).plain == "MAJOR CODE_SMELL  Message for AX1"

  def test_long_message_truncated(self) -> None:
    issue = Issue.from_dict(make_issue_dict("K", message="x" * 80, type="BUG"))
    row = issue_row(issue).plain
    assert row.endswith("x" * 49 + "…")
    assert row.startswith("MAJOR " + "BUG".ljust(11) + " x")

  def test_missing_fields(self) -> None:
    assert issue_row(Issue.from_dict({"key": "K"})).plain.endswith("(no message)")

  def test_truncate_keeps_short_text(self) -> None:
    assert truncate("short", 10) == "short"
    assert truncate("abcdef", 4) == "abc…"


class TestListTitle:
  def test_with_branch(self) -> None:
    assert list_title(3, "main") == "Issues (3) [main]"

  def test_without_branch(self) -> None:
    assert list_title(0, None) == "Issues (0)"


class TestIssueDetail:
  def test_fields_in_order(self) -> None:
    issue = Issue.from_dict(
      make_issue_dict(
        "K1",
        line=42,
        component="proj:src/app.py",
        textRange={"startLine": 42, "endLine": 44},
        severity="CRITICAL",
        type="BUG",
        message="Null dereference",
      )
    )
    plain = issue_detail(issue, "main").plain
    lines = plain.split("\n")

    assert lines[0] == "CRITICAL  BUG  OPEN  [main]  K1"
    assert lines[1] == "proj:src/app.py:42"
    assert lines[2] == "Lines: 42-44"
    assert lines[3] == "─" * 50
    assert lines[4] == "Null dereference"

  def test_flow_steps_listed(self) -> None:
    issue = Issue.from_dict(
      make_issue_dict(
        "K",
        flows=[
          {"locations": [{"component": "proj:a.py", "msg": "assigned", "textRange": {"startLine": 4, "endLine": 4}}]},
          {"locations": [{"component": "proj:b.py", "msg": "used"}]},
        ],
      )
    )
    plain = issue_detail(issue).plain
    assert "Flow:\n  1. assigned (proj:a.py:4)\n  2. used (proj:b.py:?)" in plain

  def test_minimal_issue(self) -> None:
    plain = issue_detail(Issue.from_dict({"key": "K"})).plain
    assert plain.endswith("(no message)")
    assert "Lines:" not in plain
    assert "Flow:" not in plain


class TestSnippetText:
  def test_focus_line_highlighted(self) -> None:
    window = SnippetWindow(start=9, end=11, focus=10, lines=("     9 | a", ">   10 | b", "    11 | c"))
    text = snippet_text(Snippet(content="", window=window))

    assert text.plain == "     9 | a\n>   10 | b\n    11 | c"
    styled = [text.plain[span.start:span.end] for span in text.spans if span.style == "bold reverse"]
    assert styled == [">   10 | b"]

  def test_placeholder_without_snippet(self) -> None:
    assert snippet_text(None).plain == NO_SNIPPET

  def test_placeholder_without_window(self) -> None:
    assert snippet_text(Snippet(content="a\nb")).plain == NO_SNIPPET

  def test_placeholder_for_empty_window(self) -> None:
    window = SnippetWindow(start=50, end=3, focus=50, lines=())
    assert snippet_text(Snippet(content="x", window=window)).plain == NO_SNIPPET

  def test_loading_text(self) -> None:
    assert LOADING == "Loading code snippet..."

  def test_focus_line_highlighted_over_code(self) -> None:
    window = build_window("a = 1\nb = 2\nc = 3", 2, context_lines=1)
    text = snippet_text(Snippet(content="", window=window), "proj:src/app.py")

    assert text.plain == "     1 | a = 1\n>    2 | b = 2\n     3 | c = 3"
    styled = [text.plain[span.start:span.end] for span in text.spans if span.style == "bold reverse"]
    assert styled == [">    2 | b = 2"]

  def test_code_coloured_by_extension(self) -> None:
    window = build_window("import os\nx = 1", 1)
    text = snippet_text(Snippet(content="", window=window), "proj:src/app.py")

    coloured = [
      text.plain[span.start:span.end]
      for span in text.spans
      if isinstance(span.style, Style) and span.style.color is not None
    ]
    assert "import" in coloured
    assert not any("|" in part for part in coloured)

  def test_unknown_extension_stays_plain(self) -> None:
    window = build_window("import os", 1)
    text = snippet_text(Snippet(content="", window=window), "proj:notes.unknownext")

    assert text.plain == ">    1 | import os"
    assert all(
      span.style == "bold reverse" or not (isinstance(span.style, Style) and span.style.color)
      for span in text.spans
    )


class TestGuessLexer:
  def test_known_extensions(self) -> None:
    assert guess_lexer("proj:src/app.py") == "python"
    assert guess_lexer("proj:src/Main.java") == "java"
    assert guess_lexer("proj:web/index.ts") == "typescript"

  def test_unknown_or_missing(self) -> None:
    assert guess_lexer("proj:notes.unknownext") == "default"
    assert guess_lexer("proj:Makefile") == "default"
    assert guess_lexer(None) == "default"
