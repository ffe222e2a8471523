"""Mutable state of one interactive browsing session.

Only the UI event path touches a session. Every snippet fetch is tagged with a
sequence number; a result is applied only while its number is still the
latest one issued, so out-of-order completions are dropped.
"""

from typing import Sequence

from sonardash.models import Issue

NOT_RENDERED = -1


class BrowserSession:
  """Issue set, selection, active branch and render sequence."""

  def __init__(self, issues: Sequence[Issue], branch: str | None = None):
    self.issues: list[Issue] = list(issues)
    self.branch = branch
    self.selected = 0
    self.seq = 0
    self.last_rendered = NOT_RENDERED

  @property
  def is_empty(self) -> bool:
    return not self.issues

  @property
  def current(self) -> Issue | None:
    if self.is_empty:
      return None
    return self.issues[self.selected]

  def clamp(self, index: int) -> int:
    if self.is_empty:
      return 0
    return max(0, min(index, len(self.issues) - 1))

  def move(self, delta: int) -> int:
    """Move the selection; stops at both ends instead of wrapping."""
    self.selected = self.clamp(self.selected + delta)
    return self.selected

  def select(self, index: int, force: bool = False) -> int | None:
    """Select an index and return the sequence for a new render.

    Returns None when the index is already rendered and `force` is false.
    """
    if self.is_empty:
      return None
    index = self.clamp(index)
    self.selected = index
    if index == self.last_rendered and not force:
      return None
    self.last_rendered = index
    self.seq += 1
    return self.seq

  def is_current(self, seq: int) -> bool:
    return seq == self.seq

  def replace_issues(self, issues: Sequence[Issue], branch: str | None) -> None:
    """Swap in a new issue set wholesale and reset the selection.

    Bumps the sequence so fetches started for the old set are never applied.
    """
    self.issues = list(issues)
    self.branch = branch
    self.selected = 0
    self.last_rendered = NOT_RENDERED
    self.seq += 1
