"""Tests for CLI commands."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx
import yaml
from conftest import HOST, make_issue_dict
from sonardash import __version__
from sonardash.cli import app
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
  path = tmp_path / "xdg" / "sonardash" / "config.yaml"
  path.parent.mkdir(parents=True)
  path.write_text(yaml.safe_dump({"token": "file-token", "project": "file-proj", "host": HOST}))
  return path


@pytest.fixture
def env_auth(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("SONARDASH_TOKEN", "env-token")
  monkeypatch.setenv("SONARDASH_PROJECT", "proj")
  monkeypatch.setenv("SONARDASH_HOST", HOST)


@pytest.fixture
def browser_calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Any, ...]]:
  calls: list[tuple[Any, ...]] = []

  def fake_run_browser(api: Any, page: Any, query: Any, term: str | None = None) -> None:
    calls.append((page, query, term))

  monkeypatch.setattr("sonardash.cli.run_browser", fake_run_browser)
  return calls


def _issues_route(issues: list[dict[str, Any]]) -> Any:
  return respx.get(f"{HOST}/api/issues/search").mock(
    return_value=httpx.Response(200, json={"issues": issues, "paging": {"total": len(issues)}})
  )


class TestVersion:
  def test_version_flag(self) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestPrintConfig:
  def test_layers_and_redaction(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SONARDASH_PROJECT", "env-proj")
    result = runner.invoke(app, ["print-config"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == {
      "host": HOST,
      "token": "***",
      "project": "env-proj",
      "branch": None,
      "json": False,
    }
    assert "file-token" not in result.output

  def test_flags_override_through_metrics(self, config_file: Path) -> None:
    result = runner.invoke(app, ["metrics", "--print-config", "-p", "flag-proj", "-b", "dev", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["project"] == "flag-proj"
    assert data["branch"] == "dev"
    assert data["json"] is True

  def test_default_host(self) -> None:
    data = json.loads(runner.invoke(app, ["print-config"]).output)
    assert data["host"] == "https://sonarqube.example.com"
    assert data["token"] is None

  def test_explicit_config_path(self, tmp_path: Path) -> None:
    path = tmp_path / "other.yaml"
    path.write_text("project: other\n")
    data = json.loads(runner.invoke(app, ["print-config", "--config", str(path)]).output)
    assert data["project"] == "other"


class TestConfigCommands:
  def test_set_then_get(self, tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "token=abc", "project=demo"])
    assert result.exit_code == 0
    assert "Updated" in result.output

    assert runner.invoke(app, ["config", "get", "project"]).output.strip() == "demo"
    assert runner.invoke(app, ["config", "get", "token"]).output.strip() == "***"

  def test_get_empty_token_not_masked(self) -> None:
    assert runner.invoke(app, ["config", "set", "token="]).exit_code == 0

    result = runner.invoke(app, ["config", "get", "token"])
    assert result.exit_code == 0
    assert result.output.strip() == ""

  def test_get_missing_key(self) -> None:
    result = runner.invoke(app, ["config", "get", "branch"])
    assert result.exit_code == 1

  def test_show_redacts_token(self, config_file: Path) -> None:
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"token": "***", "project": "file-proj", "host": HOST}

  def test_path(self, tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "path"])
    assert result.output.strip() == str(tmp_path / "xdg" / "sonardash" / "config.yaml")

  def test_custom_path(self, tmp_path: Path) -> None:
    path = tmp_path / "custom.yaml"
    result = runner.invoke(app, ["config", "--config", str(path), "set", "branch=dev"])

    assert result.exit_code == 0
    assert yaml.safe_load(path.read_text()) == {"branch": "dev"}

  def test_set_rejects_bad_pair(self) -> None:
    result = runner.invoke(app, ["config", "set", "token"])
    assert result.exit_code == 1
    assert "expected key=value" in result.output

  def test_set_rejects_unknown_key(self) -> None:
    result = runner.invoke(app, ["config", "set", "colour=blue"])
    assert result.exit_code == 1
    assert "Unknown config key" in result.output


class TestIssuesCommand:
  def test_requires_token(self) -> None:
    result = runner.invoke(app, ["issues", "-p", "proj"])
    assert result.exit_code == 1
    assert "Missing token" in result.output

  def test_requires_project(self) -> None:
    result = runner.invoke(app, ["issues", "-t", "abc"])
    assert result.exit_code == 1
    assert "Missing project" in result.output

  @respx.mock
  def test_json_output(self, env_auth: None) -> None:
    route = _issues_route([make_issue_dict("AX1"), make_issue_dict("AX2")])
    result = runner.invoke(app, ["issues", "--json", "--limit", "1", "--severities", "MAJOR"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [i["key"] for i in data["issues"]] == ["AX1"]
    params = route.calls.last.request.url.params
    assert params["severities"] == "MAJOR"
    assert params["componentKeys"] == "proj"

  @respx.mock
  def test_text_output(self, env_auth: None) -> None:
    _issues_route([make_issue_dict("AX1")])
    result = runner.invoke(app, ["issues"])

    assert result.exit_code == 0
    assert "Issues for: proj (showing 1)" in result.output

  @respx.mock
  def test_api_error_exits(self, env_auth: None) -> None:
    respx.get(f"{HOST}/api/issues/search").mock(return_value=httpx.Response(401, text="Unauthorized"))
    result = runner.invoke(app, ["issues"])

    assert result.exit_code == 1
    assert "Error fetching issues" in result.output
    assert "status 401" in result.output
    assert "Unauthorized" in result.output

  @respx.mock
  def test_html_reply_exits(self, env_auth: None) -> None:
    respx.get(f"{HOST}/api/issues/search").mock(
      return_value=httpx.Response(200, text="<html>login</html>", headers={"content-type": "text/html"})
    )
    result = runner.invoke(app, ["issues"])

    assert result.exit_code == 1
    assert "Error fetching issues" in result.output
    assert "text/html" in result.output

  @respx.mock
  def test_transport_error_exits(self, env_auth: None) -> None:
    respx.get(f"{HOST}/api/issues/search").mock(side_effect=httpx.ConnectError("refused"))
    result = runner.invoke(app, ["issues"])

    assert result.exit_code == 1
    assert "Error fetching issues" in result.output

  @respx.mock
  def test_interactive_without_issues(self, env_auth: None, browser_calls: list) -> None:
    _issues_route([])
    result = runner.invoke(app, ["issues", "--interactive"])

    assert result.exit_code == 0
    assert "No issues." in result.output
    assert browser_calls == []

  @respx.mock
  def test_interactive_opens_browser(self, env_auth: None, browser_calls: list) -> None:
    _issues_route([make_issue_dict("AX1"), make_issue_dict("AX2")])
    result = runner.invoke(
      app, ["issues", "-i", "-b", "dev", "--types", "BUG", "--limit", "5", "--term", "xterm"]
    )

    assert result.exit_code == 0
    [(page, query, term)] = browser_calls
    assert [i.key for i in page.issues] == ["AX1", "AX2"]
    assert page.branch == "dev"
    assert (query.project, query.types, query.limit) == ("proj", "BUG", 5)
    assert term == "xterm"

  @respx.mock
  def test_json_wins_over_interactive(self, env_auth: None, browser_calls: list) -> None:
    _issues_route([make_issue_dict("AX1")])
    result = runner.invoke(app, ["issues", "-i", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["issues"][0]["key"] == "AX1"
    assert browser_calls == []


class TestMetricsCommand:
  def _mock_status(self) -> None:
    respx.get(f"{HOST}/api/qualitygates/project_status").mock(
      return_value=httpx.Response(200, json={"projectStatus": {"status": "OK"}})
    )
    respx.get(f"{HOST}/api/measures/component").mock(
      return_value=httpx.Response(200, json={"component": {"measures": [{"metric": "bugs", "value": "0"}]}})
    )

  @respx.mock
  def test_main_branch_discovered(self, env_auth: None) -> None:
    self._mock_status()
    respx.get(f"{HOST}/api/project_branches/list").mock(
      return_value=httpx.Response(200, json={"branches": [{"name": "trunk", "isMain": True}]})
    )
    result = runner.invoke(app, ["metrics"])

    assert result.exit_code == 0
    assert "Project: proj (trunk)" in result.output
    assert "Quality Gate: PASSED" in result.output

  @respx.mock
  def test_branch_discovery_failure_ignored(self, env_auth: None) -> None:
    self._mock_status()
    respx.get(f"{HOST}/api/project_branches/list").mock(return_value=httpx.Response(403))
    result = runner.invoke(app, ["metrics", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["branch"] is None
    assert data["qualityGate"]["status"] == "OK"


class TestLookupCommands:
  @respx.mock
  def test_issue_not_found(self, env_auth: None) -> None:
    respx.get(f"{HOST}/api/issues/show").mock(return_value=httpx.Response(200, json={}))
    result = runner.invoke(app, ["issue", "AX404"])

    assert result.exit_code == 1
    assert "Issue AX404 not found" in result.output

  @respx.mock
  def test_rule_url(self, env_auth: None) -> None:
    respx.get(f"{HOST}/api/rules/show").mock(
      return_value=httpx.Response(200, json={"rule": {"key": "python:S1", "name": "Rule one"}})
    )
    result = runner.invoke(app, ["rule", "python:S1", "--url"])

    assert result.exit_code == 0
    assert "Rule one" in result.output
    assert f"{HOST}/coding_rules?open=python%3AS1&rule_key=python%3AS1" in result.output

  @respx.mock
  def test_quality_profiles_json(self, env_auth: None) -> None:
    route = respx.get(f"{HOST}/api/qualityprofiles/search").mock(
      return_value=httpx.Response(200, json={"profiles": [{"name": "Sonar way", "language": "py"}]})
    )
    result = runner.invoke(app, ["quality-profiles", "--language", "py", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output) == [{"name": "Sonar way", "language": "py"}]
    assert route.calls.last.request.url.params["language"] == "py"
