"""Pytest fixtures."""

import asyncio
from typing import Any

import pytest
from sonardash.errors import ApiError
from sonardash.models import Branch, Issue, IssuePage, Snippet, SnippetWindow

HOST = "https://sonar.test"


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
  for var in (
    "SONARDASH_TOKEN",
    "SONARDASH_PROJECT",
    "SONARDASH_HOST",
    "SONARDASH_BRANCH",
    "SONARDASH_DEBUG",
    "SONARDASH_LOG_LEVEL",
  ):
    monkeypatch.delenv(var, raising=False)
  monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def make_issue_dict(key: str, line: int | None = 3, **extra: Any) -> dict[str, Any]:
  data = {
    "key": key,
    "severity": "MAJOR",
    "type": "CODE_SMELL",
    "status": "OPEN",
    "message": f"Message for {key}",
    "component": f"proj:src/{key.lower()}.py",
    "rule": "python:S1234",
    "project": "proj",
  }
  if line is not None:
    data["line"] = line
  data.update(extra)
  return data


@pytest.fixture
def issue_dicts() -> list[dict[str, Any]]:
  return [
    make_issue_dict("AX1", line=3),
    make_issue_dict("AX2", line=12, severity="BLOCKER", type="BUG"),
    make_issue_dict("AX3", line=None, textRange={"startLine": 7, "endLine": 9}),
  ]


@pytest.fixture
def issues(issue_dicts: list[dict[str, Any]]) -> list[Issue]:
  return [Issue.from_dict(d) for d in issue_dicts]


@pytest.fixture
def sample_source() -> str:
  return "\n".join(f"line {n}" for n in range(1, 101))


class FakeApi:
  """In-memory stand-in for SonarApi; values that are exceptions get raised."""

  def __init__(
    self,
    sources: dict[str, Any] | None = None,
    lines: dict[str, Any] | None = None,
    branches: Any = None,
    branch_issues: dict[str, Any] | None = None,
  ):
    self.sources = sources or {}
    self.lines = lines or {}
    self.branch_list = branches if branches is not None else []
    self.branch_issues = branch_issues or {}
    self.calls: list[tuple[Any, ...]] = []
    self.closed = False

  @staticmethod
  def _value(value: Any) -> Any:
    if isinstance(value, Exception):
      raise value
    return value

  async def source_raw(self, key: str) -> str:
    self.calls.append(("raw", key))
    return self._value(self.sources.get(key, ApiError(404, "not found")))

  async def source_lines(self, key: str) -> list[dict[str, Any]] | None:
    self.calls.append(("show", key))
    return self._value(self.lines.get(key, ApiError(404, "not found")))

  async def branches(self, project: str) -> list[Branch]:
    self.calls.append(("branches", project))
    return self._value(self.branch_list)

  async def issues(self, project: str, branch: str | None = None, **filters: Any) -> IssuePage:
    self.calls.append(("issues", project, branch, filters))
    found = self._value(self.branch_issues.get(branch, []))
    return IssuePage(project_key=project, branch=branch, issues=found)

  async def aclose(self) -> None:
    self.closed = True


@pytest.fixture
def fake_api() -> FakeApi:
  return FakeApi()


class GatedResolver:
  """Snippet resolver that blocks each issue until its gate is opened."""

  def __init__(self):
    self.gates: dict[str, asyncio.Event] = {}
    self.calls: list[str] = []

  def gate(self, key: str) -> asyncio.Event:
    return self.gates.setdefault(key, asyncio.Event())

  async def __call__(self, api: Any, issue: Issue) -> Snippet:
    self.calls.append(issue.key)
    await self.gate(issue.key).wait()
    line = f">    1 | code of {issue.key}"
    return Snippet(content=f"code of {issue.key}", window=SnippetWindow(1, 1, 1, (line,)))
