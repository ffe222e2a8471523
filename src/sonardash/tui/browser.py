"""Interactive split-pane issue browser.

The list pane drives everything: each selection change renders the detail pane
at once and starts an async snippet fetch for the code pane. Fetches are
never cancelled; the session's sequence number decides whether a finished
fetch may still touch the screen.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from rich.text import Text
from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import OptionList, Static
from textual.widgets.option_list import Option

from sonardash.api.endpoints import SonarApi
from sonardash.errors import RenderDegradation, SonarDashError
from sonardash.models import Branch, Issue, IssuePage, IssueQuery, Snippet, main_branch
from sonardash.snippets import resolve_snippet
from sonardash.tui import render
from sonardash.tui.session import BrowserSession
from sonardash.tui.terminal import compat_term

logger = logging.getLogger(__name__)

HELP = "q:quit  ↑/↓:navigate  enter:view  r:refresh code  b:branches  h:help"

SnippetResolver = Callable[[SonarApi, Issue], Awaitable[Snippet | None]]


class IssueList(OptionList):
  """Issue list whose cursor keys are routed through the session."""

  BINDINGS = [
    Binding("j", "cursor_down", "Down", show=False),
    Binding("k", "cursor_up", "Up", show=False),
  ]

  class Navigate(Message):
    """Request to move the selection by `delta` rows."""

    def __init__(self, delta: int):
      super().__init__()
      self.delta = delta

  def action_cursor_down(self) -> None:
    self.post_message(self.Navigate(1))

  def action_cursor_up(self) -> None:
    self.post_message(self.Navigate(-1))


class BranchPicker(ModalScreen[str | None]):
  """Overlay listing branches; dismisses with the chosen name or None."""

  DEFAULT_CSS = """
  BranchPicker {
    align: center middle;
  }
  BranchPicker > OptionList {
    width: 30%;
    height: 50%;
    border: round $accent;
  }
  """

  BINDINGS = [Binding("escape", "cancel", "Cancel")]

  def __init__(self, branches: Sequence[Branch]):
    super().__init__()
    self.branches = list(branches)

  def compose(self) -> ComposeResult:
    main = main_branch(self.branches)
    options = [Option(Text(b.name + (" *" if b is main else ""))) for b in self.branches]
    picker = OptionList(*options, id="branches")
    picker.border_title = "Branches"
    yield picker

  def on_mount(self) -> None:
    picker = self.query_one("#branches", OptionList)
    picker.highlighted = 0
    picker.focus()

  @on(OptionList.OptionSelected, "#branches")
  def _on_chosen(self, event: OptionList.OptionSelected) -> None:
    event.stop()
    self.dismiss(self.branches[event.option_index].name)

  def action_cancel(self) -> None:
    self.dismiss(None)


class IssueBrowserApp(App[None]):
  """List, detail and code panes over one BrowserSession."""

  CSS = """
  #main {
    height: 1fr;
  }
  #issues {
    width: 40%;
    height: 100%;
    border: round $primary;
  }
  #right {
    width: 60%;
  }
  #detail-pane {
    height: 50%;
    border: round $secondary;
  }
  #code-pane {
    height: 1fr;
    border: round $secondary;
  }
  #status {
    height: 1;
    background: $panel;
  }
  """

  BINDINGS = [
    Binding("q", "quit", "Quit"),
    Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    Binding("r", "refresh", "Refresh code"),
    Binding("b", "branches", "Branches"),
    Binding("h", "help", "Help", show=False),
    Binding("question_mark", "help", "Help", show=False),
  ]

  BROWSER_ACTIONS = frozenset({"refresh", "branches", "help"})

  def __init__(
    self,
    api: SonarApi,
    page: IssuePage,
    query: IssueQuery,
    resolver: SnippetResolver = resolve_snippet,
  ):
    super().__init__()
    self.api = api
    self.issue_query = query
    self.session = BrowserSession(page.issues, page.branch)
    self._resolver = resolver
    self.detail_text = Text()
    self.code_text = Text()
    self.status_text = HELP
    self.title = f"Issues - {query.project}"

  def compose(self) -> ComposeResult:
    with Horizontal(id="main"):
      yield IssueList(id="issues")
      with Vertical(id="right"):
        with VerticalScroll(id="detail-pane") as detail_pane:
          detail_pane.border_title = "Detail"
          yield Static(id="detail")
        with VerticalScroll(id="code-pane") as code_pane:
          code_pane.border_title = "Code"
          yield Static(id="code")
    yield Static(HELP, id="status")

  def on_mount(self) -> None:
    self._populate_list()
    issue_list = self.query_one(IssueList)
    issue_list.focus()
    if self.session.is_empty:
      self._show_empty()
      return
    issue_list.highlighted = 0
    self.show_issue(0, force=True)

  def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
    if action in self.BROWSER_ACTIONS and isinstance(self.screen, BranchPicker):
      return False
    return True

  # Pane updates

  def set_status(self, text: str) -> None:
    self.status_text = text
    self.query_one("#status", Static).update(Text(text))

  def _set_detail(self, text: Text) -> None:
    self.detail_text = text
    self.query_one("#detail", Static).update(text)

  def _set_code(self, text: Text) -> None:
    self.code_text = text
    self.query_one("#code", Static).update(text)

  def _populate_list(self) -> None:
    issue_list = self.query_one(IssueList)
    issue_list.clear_options()
    issue_list.add_options([Option(render.issue_row(i)) for i in self.session.issues])
    issue_list.border_title = Text(render.list_title(len(self.session.issues), self.session.branch))

  def _show_empty(self) -> None:
    self._set_detail(Text("No issues."))
    self._set_code(Text(render.NO_SNIPPET, style="dim"))

  # Rendering

  def show_issue(self, index: int, force: bool = False) -> None:
    """Render detail now and start the snippet fetch for `index`."""
    seq = self.session.select(index, force=force)
    if seq is None:
      return
    issue = self.session.current
    self._set_detail(render.issue_detail(issue, self.session.branch))
    self._set_code(Text(render.LOADING))
    self.load_snippet(issue, seq)

  @work(group="snippets")
  async def load_snippet(self, issue: Issue, seq: int) -> None:
    try:
      snippet = await self._resolver(self.api, issue)
    except Exception as e:
      degraded = RenderDegradation(render.NO_SNIPPET, e)
      logger.warning("Snippet for %s failed: %s", issue.key, e)
      if self.session.is_current(seq):
        self._set_code(Text(degraded.placeholder, style="dim"))
      return
    if not self.session.is_current(seq):
      logger.debug("Dropping stale snippet %d for %s", seq, issue.key)
      return
    self._set_code(render.snippet_text(snippet, issue.component))

  # Events and actions

  @on(IssueList.Navigate)
  def _on_navigate(self, event: IssueList.Navigate) -> None:
    if self.session.is_empty:
      return
    self.query_one(IssueList).highlighted = self.session.move(event.delta)

  @on(OptionList.OptionHighlighted, "#issues")
  def _on_highlighted(self, event: OptionList.OptionHighlighted) -> None:
    self.show_issue(event.option_index)

  @on(OptionList.OptionSelected, "#issues")
  def _on_selected(self, event: OptionList.OptionSelected) -> None:
    self.show_issue(event.option_index, force=True)

  def action_help(self) -> None:
    self.set_status(HELP)

  def action_refresh(self) -> None:
    if self.session.is_empty:
      return
    self.set_status(f"{HELP}  refreshing code...")
    self.show_issue(self.session.selected, force=True)

  def action_branches(self) -> None:
    self.set_status(f"{HELP}  loading branches...")
    self.load_branches()

  @work(group="branches", exclusive=True)
  async def load_branches(self) -> None:
    try:
      branches = await self.api.branches(self.issue_query.project)
    except SonarDashError as e:
      logger.warning("Branch list failed: %s", e)
      self.set_status(f"{HELP}  branch load failed")
      return
    if not branches:
      self.set_status(f"{HELP}  no branches")
      return
    self.push_screen(BranchPicker(branches), callback=self._on_branch_chosen)

  def _on_branch_chosen(self, name: str | None) -> None:
    if name is None:
      self.set_status(HELP)
      return
    self.switch_branch(name)

  @work(group="branches", exclusive=True)
  async def switch_branch(self, name: str) -> None:
    """Re-fetch issues for `name` and replace the session's set."""
    self.set_status(f"{HELP}  loading {name}...")
    try:
      page = await self.api.issues(
        self.issue_query.project,
        branch=name,
        severities=self.issue_query.severities,
        types=self.issue_query.types,
        statuses=self.issue_query.statuses,
        limit=self.issue_query.limit,
      )
    except SonarDashError as e:
      logger.warning("Issues for branch %s failed: %s", name, e)
      self.set_status(f"{HELP}  branch load failed")
      return

    self.session.replace_issues(page.issues, name)
    self._populate_list()
    self.set_status(HELP)
    self.query_one(IssueList).focus()
    if self.session.is_empty:
      self._show_empty()
      return
    self.show_issue(0, force=True)
    self.query_one(IssueList).highlighted = 0


def run_browser(api: SonarApi, page: IssuePage, query: IssueQuery, term: str | None = None) -> None:
  """Run the browser until the user quits, then close the API client."""

  async def browse() -> None:
    try:
      await IssueBrowserApp(api, page, query).run_async()
    finally:
      await api.aclose()

  with compat_term(term):
    asyncio.run(browse())
