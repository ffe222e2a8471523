"""CLI interface using Typer."""

import asyncio
import json
import logging
import os
import traceback
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from sonardash import __version__
from sonardash.api import ApiClient, SonarApi, connect
from sonardash.api.urls import file_url, hotspot_url, issue_url, rule_url
from sonardash.config import (
  Settings,
  build_runtime_config,
  load_config,
  redact,
  resolve_config_path,
  write_config,
)
from sonardash.config.settings import REDACTED
from sonardash.errors import ApiError, ConfigError, NotFoundError, SonarDashError
from sonardash.log import configure_logging
from sonardash.models import IssueQuery, main_branch
from sonardash.output import get_formatter
from sonardash.tui import run_browser

T = TypeVar("T")

logger = logging.getLogger(__name__)

app = typer.Typer(
  name="sonardash",
  help="SonarQube dashboard CLI",
  no_args_is_help=True,
)
config_app = typer.Typer(help="Manage configuration file values", no_args_is_help=True)
app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)

_debug = False


def _is_debug() -> bool:
  return os.environ.get("SONARDASH_DEBUG", "").lower() in ("1", "true", "yes")


def version_callback(value: bool) -> None:
  if value:
    console.print(f"sonardash {__version__}")
    raise typer.Exit()


@app.callback()
def main(
  debug: bool = typer.Option(False, "--debug", "-d", help="Show full traceback on errors"),
  version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
  """Query a SonarQube server: metrics, issues, hotspots, rules and more."""
  global _debug
  _debug = debug or _is_debug()
  configure_logging(_debug)


# Shared options

def _token() -> Any:
  return typer.Option(None, "--token", "-t", help="Auth token (or from config/env)")


def _project() -> Any:
  return typer.Option(None, "--project", "-p", help="Project key (or from config/env)")


def _branch() -> Any:
  return typer.Option(None, "--branch", "-b", help="Branch name")


def _host() -> Any:
  return typer.Option(None, "--host", "-h", help="Server URL (or from config/env)")


def _config() -> Any:
  return typer.Option(None, "--config", "-c", help="Config file path")


def _json() -> Any:
  return typer.Option(False, "--json", "-j", help="Output as JSON")


def _url() -> Any:
  return typer.Option(False, "--url", help="Print the web URL")


def _open() -> Any:
  return typer.Option(False, "--open", help="Open the web URL in the default browser")


def _settings(
  config: Path | None,
  token: str | None = None,
  project: str | None = None,
  host: str | None = None,
  branch: str | None = None,
  json_output: bool = False,
) -> Settings:
  return build_runtime_config(
    load_config(config),
    token=token,
    project=project,
    host=host,
    branch=branch,
    json_output=json_output,
  )


def _require(settings: Settings, *fields: str) -> None:
  try:
    settings.require(*fields)
  except ConfigError as e:
    err_console.print(f"[red]{escape(str(e))}[/red]")
    raise typer.Exit(1) from None


def _fail(action: str, error: Exception) -> NoReturn:
  err_console.print(f"[red]Error {action}:[/red] {escape(str(error))}")
  if isinstance(error, ApiError) and error.body:
    err_console.print(f"[dim]HTTP {error.status_code}: {escape(error.body)}[/dim]")
  if _debug:
    err_console.print("\n[dim]Traceback:[/dim]")
    err_console.print(traceback.format_exc())
  raise typer.Exit(1)


def _run(settings: Settings, action: str, fetch: Callable[[SonarApi], Awaitable[T]]) -> T:
  """Run one fetch against a short-lived client; API errors are fatal."""

  async def runner() -> T:
    async with ApiClient(settings.host, settings.token or "") as client:
      return await fetch(SonarApi(client))

  try:
    return asyncio.run(runner())
  except SonarDashError as e:
    _fail(action, e)


def _emit(settings: Settings, view: str, data: Any) -> None:
  formatter = get_formatter("json" if settings.json_output else "text", console)
  output = formatter.format(view, data)
  if output:
    typer.echo(output)


def _link(url: str, show: bool, open_browser: bool) -> None:
  if show:
    typer.echo(url)
  if open_browser:
    console.print(f"[dim]Opening:[/dim] {escape(url)}")
    typer.launch(url)


def _found(value: T | None, what: str) -> T:
  if not value:
    raise NotFoundError(f"{what} not found")
  return value


# Commands

@app.command()
def metrics(
  token: Optional[str] = _token(),
  project: Optional[str] = _project(),
  branch: Optional[str] = _branch(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  print_config: bool = typer.Option(False, "--print-config", help="Print resolved configuration and exit"),
  json_output: bool = _json(),
) -> None:
  """Fetch project metrics & quality gate."""
  settings = _settings(config, token, project, host, branch, json_output)
  if print_config:
    typer.echo(json.dumps(settings.redacted(), indent=2))
    return
  _require(settings, "token", "project")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    result = await api.project_status(settings.project, settings.branch)
    if not result["branch"]:
      # Display only; metrics stay unscoped to avoid edition limits on branches.
      try:
        main_ = main_branch(await api.branches(settings.project))
      except SonarDashError as e:
        logger.debug("Branch discovery failed: %s", e)
        main_ = None
      if main_:
        result["branch"] = main_.name
    return result

  _emit(settings, "project_status", _run(settings, "fetching project status", fetch))


@app.command()
def issues(
  project: Optional[str] = _project(),
  branch: Optional[str] = _branch(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  severities: Optional[str] = typer.Option(None, "--severities", help="Comma list: BLOCKER,CRITICAL,MAJOR,MINOR,INFO"),
  types: Optional[str] = typer.Option(None, "--types", help="Comma list: BUG,VULNERABILITY,CODE_SMELL,SECURITY_HOTSPOT"),
  statuses: Optional[str] = typer.Option(None, "--statuses", help="Comma list: OPEN,CONFIRMED,REOPENED,RESOLVED,CLOSED"),
  limit: int = typer.Option(10, "--limit", "-l", min=1, help="Max issues to show"),
  json_output: bool = _json(),
  interactive: bool = typer.Option(False, "--interactive", "-i", help="Full-screen browser (list/detail/code)"),
  term: Optional[str] = typer.Option(None, "--term", help="TERM value to use for the interactive session"),
) -> None:
  """List issues for a project."""
  settings = _settings(config, token, project, host, branch, json_output)
  _require(settings, "token", "project")
  query = IssueQuery(
    project=settings.project,
    severities=severities,
    types=types,
    statuses=statuses,
    limit=limit,
  )
  page = _run(
    settings,
    "fetching issues",
    lambda api: api.issues(
      query.project,
      branch=settings.branch,
      severities=query.severities,
      types=query.types,
      statuses=query.statuses,
      limit=query.limit,
    ),
  )

  if settings.json_output or not interactive:
    _emit(settings, "issues", page)
    return
  if not page.issues:
    console.print("[green]No issues.[/green]")
    return
  run_browser(connect(settings.host, settings.token), page, query, term=term)


@app.command("issues:summary")
def issues_summary(
  project: Optional[str] = _project(),
  branch: Optional[str] = _branch(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  facets: Optional[str] = typer.Option(None, "--facets", help="Comma list of facets (default severities,types,statuses)"),
  json_output: bool = _json(),
) -> None:
  """Show aggregated issue counts (facets)."""
  settings = _settings(config, token, project, host, branch, json_output)
  _require(settings, "token", "project")
  summary = _run(
    settings,
    "fetching issues summary",
    lambda api: api.issues_summary(settings.project, settings.branch, facets),
  )
  _emit(settings, "issues_summary", summary)


@app.command()
def issue(
  key: str = typer.Argument(..., help="Issue key"),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
  url: bool = _url(),
  open_browser: bool = _open(),
) -> None:
  """Show a single issue by key."""
  settings = _settings(config, token, host=host, json_output=json_output)
  _require(settings, "token")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    return _found(await api.issue(key), f"Issue {key}")

  data = _run(settings, "fetching issue", fetch)
  _emit(settings, "issue", data)
  if not settings.json_output:
    _link(issue_url(settings.host, data.get("key", key), data.get("project")), url, open_browser)


@app.command()
def hotspots(
  project: Optional[str] = _project(),
  branch: Optional[str] = _branch(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  status: Optional[str] = typer.Option(None, "--status", help="TO_REVIEW or REVIEWED"),
  severity: Optional[str] = typer.Option(None, "--severity", help="LOW, MEDIUM or HIGH"),
  limit: int = typer.Option(50, "--limit", "-l", min=1, help="Max hotspots"),
  json_output: bool = _json(),
) -> None:
  """List security hotspots."""
  settings = _settings(config, token, project, host, branch, json_output)
  _require(settings, "token", "project")
  data = _run(
    settings,
    "fetching hotspots",
    lambda api: api.hotspots(settings.project, settings.branch, status, severity, limit),
  )
  _emit(settings, "hotspots", data)


@app.command()
def hotspot(
  key: str = typer.Argument(..., help="Hotspot key"),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
  url: bool = _url(),
  open_browser: bool = _open(),
) -> None:
  """Show a single hotspot by key."""
  settings = _settings(config, token, host=host, json_output=json_output)
  _require(settings, "token")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    return _found(await api.hotspot(key), f"Hotspot {key}")

  data = _run(settings, "fetching hotspot", fetch)
  _emit(settings, "hotspot", data)
  if not settings.json_output:
    project_ = data.get("project")
    project_key = project_.get("key") if isinstance(project_, dict) else project_
    _link(hotspot_url(settings.host, data.get("key", key), project_key), url, open_browser)


@app.command()
def rules(
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  query: Optional[str] = typer.Option(None, "--query", "-q", help="Search text"),
  languages: Optional[str] = typer.Option(None, "--languages", help="Comma list of languages"),
  tags: Optional[str] = typer.Option(None, "--tags", help="Comma list of tags"),
  repository: Optional[str] = typer.Option(None, "--repository", help="Repository key"),
  severities: Optional[str] = typer.Option(None, "--severities", help="Comma list of severities"),
  limit: int = typer.Option(50, "--limit", "-l", min=1, help="Max rules"),
  json_output: bool = _json(),
) -> None:
  """Search rules."""
  settings = _settings(config, token, host=host, json_output=json_output)
  _require(settings, "token")
  data = _run(
    settings,
    "searching rules",
    lambda api: api.rules(query, languages, tags, repository, severities, limit),
  )
  _emit(settings, "rules", data)


@app.command()
def rule(
  key: str = typer.Argument(..., help="Rule key"),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
  url: bool = _url(),
  open_browser: bool = _open(),
) -> None:
  """Show a single rule."""
  settings = _settings(config, token, host=host, json_output=json_output)
  _require(settings, "token")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    return _found(await api.rule(key), f"Rule {key}")

  data = _run(settings, "fetching rule", fetch)
  _emit(settings, "rule", data)
  if not settings.json_output:
    _link(rule_url(settings.host, data.get("key", key)), url, open_browser)


@app.command()
def measures(
  component: str = typer.Option(..., "--component", "-C", help="Component key (project or file)"),
  metrics_: str = typer.Option(
    "coverage,bugs,vulnerabilities,code_smells", "--metrics", "-m", help="Comma list of metric keys"
  ),
  branch: Optional[str] = _branch(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
) -> None:
  """Fetch component measures."""
  settings = _settings(config, token, host=host, branch=branch, json_output=json_output)
  _require(settings, "token")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    return _found(await api.measures(component, metrics_, settings.branch), "Measures")

  _emit(settings, "measures", _run(settings, "fetching measures", fetch))


@app.command("measures:history")
def measures_history(
  component: str = typer.Option(..., "--component", "-C", help="Component key"),
  metrics_: str = typer.Option(
    "coverage,bugs,vulnerabilities,code_smells", "--metrics", "-m", help="Comma list of metric keys"
  ),
  branch: Optional[str] = _branch(),
  from_date: Optional[str] = typer.Option(None, "--from", help="From date (YYYY-MM-DD)"),
  to_date: Optional[str] = typer.Option(None, "--to", help="To date (YYYY-MM-DD)"),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
) -> None:
  """Fetch historical measures."""
  settings = _settings(config, token, host=host, branch=branch, json_output=json_output)
  _require(settings, "token")
  history = _run(
    settings,
    "fetching measures history",
    lambda api: api.measures_history(component, metrics_, settings.branch, from_date, to_date),
  )
  _emit(settings, "measures_history", history)


@app.command("component-tree")
def component_tree(
  component: str = typer.Option(..., "--component", "-C", help="Component key (project or module)"),
  branch: Optional[str] = _branch(),
  qualifiers: str = typer.Option("FIL", "--qualifiers", "-q", help="Qualifier codes"),
  metrics_: Optional[str] = typer.Option(None, "--metrics", "-m", help="Comma list of metric keys"),
  strategy: str = typer.Option("leaves", "--strategy", help="Tree strategy (leaves|children)"),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
) -> None:
  """Browse the component tree (files)."""
  settings = _settings(config, token, host=host, branch=branch, json_output=json_output)
  _require(settings, "token")
  tree = _run(
    settings,
    "fetching component tree",
    lambda api: api.component_tree(
      component,
      branch=settings.branch,
      qualifiers=qualifiers,
      metric_keys=metrics_,
      strategy=strategy,
    ),
  )
  _emit(settings, "component_tree", tree)


@app.command()
def duplications(
  file: str = typer.Option(..., "--file", "-f", help="File component key"),
  project: Optional[str] = _project(),
  branch: Optional[str] = _branch(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
  url: bool = _url(),
  open_browser: bool = _open(),
) -> None:
  """Show duplications for a file."""
  settings = _settings(config, token, project, host, branch, json_output)
  _require(settings, "token")
  data = _run(settings, "fetching duplications", lambda api: api.duplications(file, settings.branch))
  _emit(settings, "duplications", data)
  if not settings.json_output:
    _link(file_url(settings.host, file, settings.branch), url, open_browser)


@app.command("quality-profiles")
def quality_profiles(
  language: Optional[str] = typer.Option(None, "--language", help="Language key"),
  project: Optional[str] = _project(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
) -> None:
  """List quality profiles."""
  settings = _settings(config, token, project, host, json_output=json_output)
  _require(settings, "token")
  profiles = _run(
    settings,
    "fetching quality profiles",
    lambda api: api.quality_profiles(language, settings.project),
  )
  _emit(settings, "quality_profiles", profiles)


@app.command("quality-gate")
def quality_gate(
  project: Optional[str] = _project(),
  token: Optional[str] = _token(),
  host: Optional[str] = _host(),
  config: Optional[Path] = _config(),
  json_output: bool = _json(),
) -> None:
  """Show quality gate project status."""
  settings = _settings(config, token, project, host, json_output=json_output)
  _require(settings, "token", "project")

  async def fetch(api: SonarApi) -> dict[str, Any]:
    return _found(await api.quality_gate(settings.project), "Quality gate data")

  _emit(settings, "quality_gate", _run(settings, "fetching quality gate", fetch))


@app.command("print-config")
def print_config(config: Optional[Path] = _config()) -> None:
  """Print resolved runtime configuration (token redacted)."""
  typer.echo(json.dumps(_settings(config).redacted(), indent=2))


# Config file management

@config_app.callback()
def config_main(
  ctx: typer.Context,
  config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path (overrides default)"),
) -> None:
  ctx.obj = config


@config_app.command("set")
def config_set(
  ctx: typer.Context,
  pairs: list[str] = typer.Argument(..., help="key=value pairs (token project host branch)"),
) -> None:
  """Set one or more key value pairs."""
  updates = {}
  for pair in pairs:
    key, sep, value = pair.partition("=")
    if not sep or not key:
      err_console.print(f"[red]Invalid format (expected key=value): {escape(pair)}[/red]")
      raise typer.Exit(1)
    updates[key] = value
  try:
    path, _ = write_config(updates, ctx.obj)
  except ConfigError as e:
    err_console.print(f"[red]{escape(str(e))}[/red]")
    raise typer.Exit(1) from None
  typer.echo(f"Updated {path}")


@config_app.command("get")
def config_get(
  ctx: typer.Context,
  key: str = typer.Argument(..., help="token | project | host | branch"),
) -> None:
  """Get a single key value."""
  file_config = load_config(ctx.obj).file_config
  if key not in file_config:
    raise typer.Exit(1)
  value = file_config[key]
  typer.echo(REDACTED if key == "token" and value else value)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
  """Show stored config (token redacted)."""
  typer.echo(json.dumps(redact(load_config(ctx.obj).file_config), indent=2))


@config_app.command("path")
def config_path(ctx: typer.Context) -> None:
  """Print the resolved config file path."""
  typer.echo(str(resolve_config_path(ctx.obj)))


if __name__ == "__main__":
  app()
