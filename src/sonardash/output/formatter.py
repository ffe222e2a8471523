"""Output formatting for fetched server data."""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from sonardash.models import IssuePage, label
from sonardash.tui.render import SEVERITY_STYLES

SPARK_CHARS = "▁▂▃▄▅▆▇█"
FACET_ORDER = ("severities", "types", "statuses")


def title_case(name: str) -> str:
  return " ".join(w[:1].upper() + w[1:] for w in name.replace("_", " ").split(" "))


def short_component(component: str | None) -> str:
  """Drop the project prefix from a server component key."""
  if not component:
    return ""
  _, sep, path = component.partition(":")
  return path if sep and path else component


def sparkline(values: list[Any]) -> str | None:
  """Eight-level sparkline, or None unless every value is numeric."""
  try:
    numbers = [float(v) for v in values]
  except (TypeError, ValueError):
    return None
  if not numbers:
    return None
  low, high = min(numbers), max(numbers)
  span = (high - low) or 1
  return "".join(
    SPARK_CHARS[round((n - low) / span * (len(SPARK_CHARS) - 1))] for n in numbers
  )


def strip_html(html: str) -> str:
  return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", html)).strip()


class OutputFormatter(ABC):
  """Base output formatter."""

  @abstractmethod
  def format(self, view: str, data: Any) -> str:
    """Format `data` for the named view."""
    ...


class JsonFormatter(OutputFormatter):
  """JSON output formatter."""

  def format(self, view: str, data: Any) -> str:
    if isinstance(data, IssuePage):
      data = data.to_dict()
    return json.dumps(data, indent=2)


class TextFormatter(OutputFormatter):
  """Rich terminal output; prints directly and returns an empty string."""

  def __init__(self, console: Console | None = None):
    self.console = console or Console()

  def format(self, view: str, data: Any) -> str:
    printer = getattr(self, f"_print_{view}", None)
    if printer is None:
      raise ValueError(f"Unknown view: {view}")
    printer(data)
    return ""

  def _heading(self, text: str) -> None:
    self.console.print()
    self.console.print(text)
    self.console.print()

  def _print_project_status(self, data: dict[str, Any]) -> None:
    gate = data.get("qualityGate") or {}
    passed = gate.get("status") == "OK"
    name = data.get("projectKey") or gate.get("project") or "Unknown"
    branch = data.get("branch")
    self._heading(f"Project: [bold]{escape(name)}[/bold]" + (f" ({escape(branch)})" if branch else ""))
    self.console.print(
      "Quality Gate: " + ("[green]PASSED[/green]" if passed else "[red]FAILED[/red]")
    )
    gate_name = (gate.get("qualityGate") or {}).get("name")
    if gate_name:
      self.console.print(f"Gate Name: {escape(gate_name)}")
    self.console.print()

    metrics = data.get("metrics") or []
    if not metrics:
      self.console.print("[yellow]No metrics returned.[/yellow]\n")
      return
    pad = max(len(title_case(m.get("metric", ""))) for m in metrics) + 2
    for m in metrics:
      value = m.get("value")
      self.console.print(
        f"• {title_case(m.get('metric', '')).ljust(pad)} [cyan]{escape(str(value if value is not None else '—'))}[/cyan]"
      )
    self.console.print()

  def _print_issues(self, page: IssuePage) -> None:
    branch = f" ({escape(page.branch)})" if page.branch else ""
    self._heading(
      f"Issues for: [bold]{escape(page.project_key)}[/bold]{branch} (showing {len(page.issues)})"
    )
    if not page.issues:
      self.console.print("[green]No issues found with provided filters.[/green]\n")
      return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Severity", width=10)
    table.add_column("Type", width=16)
    table.add_column("Location", min_width=20)
    table.add_column("Issue", min_width=40)
    for issue in page.issues:
      location = short_component(issue.component)
      if location and issue.line:
        location += f":{issue.line}"
      message = Text(issue.display_message)
      message.append(f"\n{issue.key} {issue.rule or ''}".rstrip(), style="dim")
      table.add_row(
        Text(label(issue.severity), style=SEVERITY_STYLES.get(issue.severity, "")),
        Text(label(issue.type), style="magenta"),
        Text(location, style="blue"),
        message,
      )
    self.console.print(table)
    self.console.print()

  def _print_facet(self, name: str, counts: dict[str, int]) -> None:
    self.console.print(f"\n[bold]{title_case(name)}:[/bold]")
    width = max((len(k) for k in counts), default=0) + 2
    for key, count in sorted(counts.items(), key=lambda kv: kv[1], reverse=True):
      self.console.print(f"  {escape(key.ljust(width))} [green]{count}[/green]")

  def _print_issues_summary(self, data: dict[str, Any]) -> None:
    branch = data.get("branch")
    self.console.print(
      f"\nIssues Summary: [bold]{escape(data.get('projectKey', ''))}[/bold]"
      + (f" ({escape(branch)})" if branch else "")
    )
    self.console.print(f"Total issues: [cyan]{data.get('total', 0)}[/cyan]")
    facets = data.get("facets") or {}
    for name in FACET_ORDER:
      if name in facets:
        self._print_facet(name, facets[name])
    for name, counts in facets.items():
      if name not in FACET_ORDER:
        self._print_facet(name, counts)
    self.console.print()

  def _print_issue(self, issue: dict[str, Any]) -> None:
    self._heading(f"Issue [dim]{escape(issue.get('key', ''))}[/dim]")
    self.console.print(
      f"[bold]{escape(issue.get('severity', ''))}[/bold] "
      f"[magenta]{escape(issue.get('type', ''))}[/magenta] {escape(issue.get('status') or '')}"
    )
    self.console.print(escape(issue.get("message") or "(no message)"))
    self.console.print(f"[bright_black]{escape(issue.get('rule') or '')}[/bright_black]")
    component = short_component(issue.get("component"))
    if component:
      line = f":{issue['line']}" if issue.get("line") else ""
      self.console.print(f"[blue]{escape(component)}[/blue]{line}")
    text_range = issue.get("textRange")
    if text_range:
      self.console.print(f"Lines {text_range.get('startLine')}-{text_range.get('endLine')}")
    self.console.print()

  def _print_hotspot_line(self, hotspot: dict[str, Any]) -> None:
    component = short_component(hotspot.get("component"))
    if component:
      line = f":{hotspot['line']}" if hotspot.get("line") else ""
      self.console.print(f"  [blue]{escape(component)}[/blue]{line}")

  def _print_hotspots(self, data: dict[str, Any]) -> None:
    hotspots = data.get("hotspots") or []
    branch = data.get("branch")
    self._heading(
      f"Hotspots for: [bold]{escape(data.get('projectKey') or '')}[/bold]"
      + (f" ({escape(branch)})" if branch else "")
      + f" (showing {len(hotspots)})"
    )
    if not hotspots:
      self.console.print("[green]No hotspots.[/green]")
      return
    for h in hotspots:
      probability = h.get("vulnerabilityProbability") or h.get("severity") or "UNKNOWN"
      style = {"HIGH": "red", "MEDIUM": "yellow"}.get(probability, "bright_black")
      self.console.print(
        f"[{style}]{probability.ljust(6)}[/{style}] "
        f"{escape(h.get('securityCategory') or '')} {escape(h.get('message') or '')}"
      )
      self.console.print(f"  [dim]{escape(h.get('key', ''))}[/dim]")
      self._print_hotspot_line(h)
      self.console.print()

  def _print_hotspot(self, hotspot: dict[str, Any]) -> None:
    self._heading(f"Hotspot [dim]{escape(hotspot.get('key', ''))}[/dim]")
    probability = hotspot.get("vulnerabilityProbability") or hotspot.get("severity") or "UNKNOWN"
    self.console.print(f"{probability} {escape(hotspot.get('securityCategory') or '')}")
    self.console.print(escape(hotspot.get("message") or ""))
    self._print_hotspot_line(hotspot)
    self.console.print()

  def _print_rules(self, data: dict[str, Any]) -> None:
    rules = data.get("rules") or []
    self._heading(f"Rules (showing {len(rules)})")
    if not rules:
      self.console.print("[yellow]No rules matched.[/yellow]")
      return
    for r in rules:
      self.console.print(
        f"{(r.get('severity') or '').ljust(8)} [magenta]{escape(r.get('key', ''))}[/magenta] "
        f"{escape(r.get('name', ''))}"
      )
      tags = " ".join(f"#{t}" for t in r.get("tags") or [])
      self.console.print(f"  [bright_black]{escape(r.get('lang') or '')}[/bright_black] {escape(tags)}")
    self.console.print()

  def _print_rule(self, rule: dict[str, Any]) -> None:
    self._heading(f"Rule [magenta]{escape(rule.get('key', ''))}[/magenta]")
    self.console.print(escape(rule.get("name", "")))
    self.console.print(f"[bright_black]{escape(rule.get('lang') or '')}[/bright_black]")
    if rule.get("htmlDesc"):
      self.console.print()
      self.console.print(escape(strip_html(rule["htmlDesc"])))
      self.console.print()

  def _print_measures(self, component: dict[str, Any]) -> None:
    name = component.get("key") or component.get("id") or "component"
    self._heading(f"Measures for [bold]{escape(name)}[/bold]")
    measures = component.get("measures") or []
    pad = max([10] + [len(m.get("metric") or "") for m in measures]) + 2
    for m in measures:
      value = m.get("value")
      self.console.print(
        f"{(m.get('metric') or '').ljust(pad)} [cyan]{escape(str(value if value is not None else '—'))}[/cyan]"
      )
    self.console.print()

  def _print_measures_history(self, history: dict[str, Any]) -> None:
    self._heading("Measures History")
    for m in history.get("measures") or []:
      self.console.print(f"Metric: [bold]{escape(m.get('metric', ''))}[/bold]")
      points = m.get("history") or []
      if not points:
        self.console.print("  (no data)")
        continue
      spark = sparkline([p.get("value") for p in points])
      if spark:
        self.console.print(f"  {spark}")
      last = points[-1]
      self.console.print(f"  Latest: [cyan]{escape(str(last.get('value')))}[/cyan] at {last.get('date')}")
    self.console.print()

  def _print_component_tree(self, tree: dict[str, Any]) -> None:
    base = tree.get("baseComponent") or {}
    self._heading(f"Component Tree: [bold]{escape(base.get('key', ''))}[/bold]")
    for c in tree.get("components") or []:
      metrics = " ".join(f"{m.get('metric')}={m.get('value')}" for m in c.get("measures") or [])
      self.console.print(
        f"{c.get('qualifier') or ''} [blue]{escape(c.get('key') or c.get('id') or '')}[/blue] {escape(metrics)}"
      )
    self.console.print()

  def _print_duplications(self, data: dict[str, Any]) -> None:
    self._heading("Duplications")
    segments = data.get("duplications") or []
    if not segments:
      self.console.print("No duplications segments.")
      return
    files = data.get("files") or {}
    for segment in segments:
      blocks = segment.get("blocks") or []
      self.console.print(f"Segment ({len(blocks)} blocks)")
      for b in blocks:
        ref = files.get(str(b.get("_ref"))) or {}
        name = ref.get("name") or ref.get("key") or str(b.get("_ref", ""))
        start = b.get("from") or 0
        end = start + max((b.get("size") or 1) - 1, 0)
        self.console.print(f"  [blue]{escape(name)}[/blue] lines {start}-{end}")
    self.console.print()

  def _print_quality_profiles(self, profiles: list[dict[str, Any]]) -> None:
    self._heading(f"Quality Profiles ({len(profiles)})")
    for p in profiles:
      flags = " ".join(
        f for f, on in (("\\[default]", p.get("isDefault")), ("\\[inherited]", p.get("isInherited"))) if on
      )
      self.console.print(
        f"[bold]{escape(p.get('language') or '')}[/bold] [green]{escape(p.get('name', ''))}[/green] {flags}".rstrip()
      )
    self.console.print()

  def _print_quality_gate(self, gate: dict[str, Any]) -> None:
    self._heading("Quality Gate Status")
    status = gate.get("status")
    self.console.print(
      "Status: " + ("[green]PASSED[/green]" if status == "OK" else f"[red]{escape(str(status))}[/red]")
    )
    for c in gate.get("conditions") or []:
      mark = "[green]✔[/green]" if c.get("status") == "OK" else "[red]✖[/red]"
      self.console.print(
        f"  {mark} {escape(c.get('metricKey', ''))} {c.get('comparator') or ''} "
        f"{c.get('errorThreshold') or ''} => {c.get('actualValue') or c.get('value') or ''}"
      )
    self.console.print()

  def _print_config(self, data: dict[str, Any]) -> None:
    self.console.print_json(json.dumps(data))


def get_formatter(format_type: str, console: Console | None = None) -> OutputFormatter:
  """Get formatter by type name."""
  if format_type == "json":
    return JsonFormatter()
  if format_type == "text":
    return TextFormatter(console)
  raise ValueError(f"Unknown format: {format_type}")
