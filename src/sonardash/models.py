"""Core domain models for server data."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

NO_MESSAGE = "(no message)"


class _ServerEnum(Enum):
  """Closed enum that keeps unknown server values as raw strings."""

  @classmethod
  def parse(cls, raw: str | None) -> "_ServerEnum | str | None":
    if raw is None or raw == "":
      return None
    try:
      return cls(raw)
    except ValueError:
      return raw


class Severity(_ServerEnum):
  """Issue severity levels."""

  BLOCKER = "BLOCKER"
  CRITICAL = "CRITICAL"
  MAJOR = "MAJOR"
  MINOR = "MINOR"
  INFO = "INFO"


class IssueType(_ServerEnum):
  """Issue categories."""

  BUG = "BUG"
  VULNERABILITY = "VULNERABILITY"
  CODE_SMELL = "CODE_SMELL"
  SECURITY_HOTSPOT = "SECURITY_HOTSPOT"


class IssueStatus(_ServerEnum):
  """Issue workflow status."""

  OPEN = "OPEN"
  CONFIRMED = "CONFIRMED"
  REOPENED = "REOPENED"
  RESOLVED = "RESOLVED"
  CLOSED = "CLOSED"


def label(value: Enum | str | None) -> str:
  """Display text for an enum member or a raw fallback string."""
  if value is None:
    return ""
  if isinstance(value, Enum):
    return value.value
  return str(value)


@dataclass(frozen=True)
class TextRange:
  """Line span of an issue or flow location."""

  start_line: int
  end_line: int

  @classmethod
  def from_dict(cls, data: dict[str, Any] | None) -> "TextRange | None":
    if not data or data.get("startLine") is None:
      return None
    start = int(data["startLine"])
    return cls(start_line=start, end_line=int(data.get("endLine", start)))


@dataclass(frozen=True)
class FlowLocation:
  """A secondary location explaining one step of an issue."""

  component: str
  message: str
  text_range: TextRange | None = None

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> "FlowLocation":
    return cls(
      component=data.get("component", ""),
      message=data.get("msg", ""),
      text_range=TextRange.from_dict(data.get("textRange")),
    )


@dataclass(frozen=True)
class Flow:
  """Ordered locations forming one multi-step explanation."""

  locations: Sequence[FlowLocation]

  @property
  def first(self) -> FlowLocation | None:
    return self.locations[0] if self.locations else None


@dataclass(frozen=True)
class Issue:
  """A code-quality finding tied to a file and line."""

  key: str
  severity: Severity | str | None
  type: IssueType | str | None
  message: str | None = None
  status: IssueStatus | str | None = None
  component: str | None = None
  line: int | None = None
  text_range: TextRange | None = None
  flows: Sequence[Flow] = ()
  rule: str | None = None
  project: str | None = None
  raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> "Issue":
    raw_flows = data.get("flows")
    if raw_flows is None:
      raw_flows = data.get("flow") or []
    flows = tuple(
      Flow(locations=tuple(FlowLocation.from_dict(loc) for loc in f.get("locations") or []))
      for f in raw_flows
    )
    line = data.get("line")
    return cls(
      key=data.get("key", ""),
      severity=Severity.parse(data.get("severity")),
      type=IssueType.parse(data.get("type")),
      message=data.get("message") or None,
      status=IssueStatus.parse(data.get("status")),
      component=data.get("component") or None,
      line=int(line) if line is not None else None,
      text_range=TextRange.from_dict(data.get("textRange")),
      flows=flows,
      rule=data.get("rule"),
      project=data.get("project"),
      raw=dict(data),
    )

  @property
  def display_message(self) -> str:
    return self.message or NO_MESSAGE

  @property
  def focus_line(self) -> int | None:
    """Line the snippet centers on: `line`, else the range start."""
    if self.line:
      return self.line
    if self.text_range:
      return self.text_range.start_line
    return None


@dataclass(frozen=True)
class IssuePage:
  """Issue search result for one project and branch."""

  project_key: str
  branch: str | None
  issues: Sequence[Issue]
  paging: dict[str, Any] | None = None

  def to_dict(self) -> dict[str, Any]:
    return {
      "projectKey": self.project_key,
      "branch": self.branch,
      "paging": self.paging,
      "issues": [i.raw for i in self.issues],
    }


@dataclass(frozen=True)
class Branch:
  """A project branch known to the server."""

  name: str
  is_main: bool = False

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> "Branch":
    return cls(name=data.get("name", ""), is_main=bool(data.get("isMain")))


def main_branch(branches: Sequence[Branch]) -> Branch | None:
  """Main branch, or the first one when the server flags none."""
  for branch in branches:
    if branch.is_main:
      return branch
  return branches[0] if branches else None


@dataclass(frozen=True)
class SnippetWindow:
  """Annotated excerpt around a focus line (1-based, inclusive).

  `code` holds the bare source text of each line when it is known.
  """

  start: int
  end: int
  focus: int
  lines: Sequence[str]
  code: Sequence[str] = ()

  def render(self) -> str:
    return "\n".join(self.lines)


@dataclass(frozen=True)
class Snippet:
  """File content plus an optional window around the issue."""

  content: str
  window: SnippetWindow | None = None


@dataclass(frozen=True)
class IssueQuery:
  """Filters used for an issue search, reused on branch switch."""

  project: str
  severities: str | None = None
  types: str | None = None
  statuses: str | None = None
  limit: int = 10
