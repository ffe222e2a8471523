"""Endpoint operations layered over ApiClient."""

from typing import Any, Sequence

from sonardash.api.client import ApiClient
from sonardash.models import Branch, Issue, IssuePage

MAX_PAGE_SIZE = 500
PROJECT_METRICS = (
  "bugs",
  "vulnerabilities",
  "code_smells",
  "coverage",
  "duplicated_lines_density",
)
DEFAULT_FACETS = "severities,types,statuses"


def _csv(value: str | Sequence[str] | None) -> str | None:
  if value is None or isinstance(value, str):
    return value
  return ",".join(value)


def _page_size(limit: int) -> int:
  return max(1, min(limit, MAX_PAGE_SIZE))


class SonarApi:
  """One method per server query; each only shapes parameters."""

  def __init__(self, client: ApiClient):
    self.client = client

  async def aclose(self) -> None:
    await self.client.aclose()

  async def project_status(self, project: str, branch: str | None = None) -> dict[str, Any]:
    """Quality gate verdict plus headline metrics."""
    gate = await self.client.request(
      "/api/qualitygates/project_status",
      {"projectKey": project, "branch": branch},
    )
    measures = await self.client.request(
      "/api/measures/component",
      {"component": project, "metricKeys": ",".join(PROJECT_METRICS), "branch": branch},
    )
    quality_gate = dict(gate.get("projectStatus") or {})
    quality_gate.setdefault("project", project)
    return {
      "projectKey": project,
      "branch": branch,
      "qualityGate": quality_gate,
      "metrics": (measures.get("component") or {}).get("measures") or [],
    }

  async def quality_gate(self, project: str) -> dict[str, Any] | None:
    data = await self.client.request(
      "/api/qualitygates/project_status", {"projectKey": project}
    )
    return data.get("projectStatus")

  async def measures(
    self,
    component: str,
    metric_keys: str | Sequence[str],
    branch: str | None = None,
  ) -> dict[str, Any] | None:
    data = await self.client.request(
      "/api/measures/component",
      {"component": component, "metricKeys": _csv(metric_keys), "branch": branch},
    )
    return data.get("component")

  async def issues(
    self,
    project: str,
    branch: str | None = None,
    severities: str | None = None,
    types: str | None = None,
    statuses: str | None = None,
    limit: int = 10,
  ) -> IssuePage:
    """First page of issues, capped at `limit`."""
    data = await self.client.request(
      "/api/issues/search",
      {
        "componentKeys": project,
        "p": 1,
        "ps": _page_size(limit),
        "branch": branch,
        "severities": severities,
        "types": types,
        "statuses": statuses,
      },
    )
    issues = [Issue.from_dict(i) for i in (data.get("issues") or [])[:limit]]
    return IssuePage(project_key=project, branch=branch, issues=issues, paging=data.get("paging"))

  async def issues_summary(
    self,
    project: str,
    branch: str | None = None,
    facets: str | None = None,
  ) -> dict[str, Any]:
    """Facet counts without issue bodies."""
    facet_list = (facets or "").strip() or DEFAULT_FACETS
    data = await self.client.request(
      "/api/issues/search",
      {"componentKeys": project, "p": 1, "ps": 1, "facets": facet_list, "branch": branch},
    )
    out: dict[str, dict[str, int]] = {}
    for facet in data.get("facets") or []:
      out[facet.get("property", "")] = {v["val"]: v["count"] for v in facet.get("values") or []}
    total = (data.get("paging") or {}).get("total", data.get("total", 0))
    return {
      "projectKey": project,
      "branch": branch,
      "total": total,
      "facets": out,
      "requestedFacets": facet_list.split(","),
    }

  async def issue(self, key: str) -> dict[str, Any] | None:
    data = await self.client.request("/api/issues/show", {"issue": key})
    return data.get("issue")

  async def hotspots(
    self,
    project: str,
    branch: str | None = None,
    status: str | None = None,
    severity: str | None = None,
    limit: int = 50,
  ) -> dict[str, Any]:
    data = await self.client.request(
      "/api/hotspots/search",
      {
        "projectKey": project,
        "p": 1,
        "ps": _page_size(limit),
        "branch": branch,
        "status": status,
        "severity": severity,
      },
    )
    return {
      "projectKey": project,
      "branch": branch,
      "hotspots": data.get("hotspots") or [],
      "paging": data.get("paging"),
    }

  async def hotspot(self, key: str) -> dict[str, Any] | None:
    data = await self.client.request("/api/hotspots/show", {"hotspot": key})
    return data.get("hotspot")

  async def rules(
    self,
    query: str | None = None,
    languages: str | None = None,
    tags: str | None = None,
    repository: str | None = None,
    severities: str | None = None,
    limit: int = 50,
  ) -> dict[str, Any]:
    data = await self.client.request(
      "/api/rules/search",
      {
        "p": 1,
        "ps": _page_size(limit),
        "q": query,
        "languages": languages,
        "tags": tags,
        "repositories": repository,
        "severities": severities,
      },
    )
    return {"rules": data.get("rules") or [], "paging": data.get("paging")}

  async def rule(self, key: str) -> dict[str, Any] | None:
    data = await self.client.request("/api/rules/show", {"key": key})
    return data.get("rule")

  async def measures_history(
    self,
    component: str,
    metrics: str | Sequence[str],
    branch: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    page_size: int = 100,
  ) -> dict[str, Any]:
    data = await self.client.request(
      "/api/measures/search_history",
      {
        "component": component,
        "metrics": _csv(metrics),
        "ps": _page_size(page_size),
        "branch": branch,
        "from": from_date,
        "to": to_date,
      },
    )
    return data or {}

  async def component_tree(
    self,
    component: str,
    branch: str | None = None,
    qualifiers: str = "FIL",
    metric_keys: str | Sequence[str] | None = None,
    strategy: str = "leaves",
    page_size: int = 100,
  ) -> dict[str, Any]:
    data = await self.client.request(
      "/api/components/tree",
      {
        "component": component,
        "qualifiers": qualifiers,
        "strategy": strategy,
        "ps": _page_size(page_size),
        "metricKeys": _csv(metric_keys),
        "branch": branch,
      },
    )
    return data or {}

  async def duplications(self, file_key: str, branch: str | None = None) -> dict[str, Any]:
    if not file_key:
      raise ValueError("file key required for duplications")
    data = await self.client.request(
      "/api/duplications/show", {"key": file_key, "branch": branch}
    )
    return data or {}

  async def quality_profiles(
    self,
    language: str | None = None,
    project: str | None = None,
  ) -> list[dict[str, Any]]:
    data = await self.client.request(
      "/api/qualityprofiles/search", {"language": language, "project": project}
    )
    return data.get("profiles") or []

  async def branches(self, project: str) -> list[Branch]:
    data = await self.client.request("/api/project_branches/list", {"project": project})
    return [Branch.from_dict(b) for b in data.get("branches") or []]

  async def source_raw(self, key: str) -> str:
    """Full file text from the raw source endpoint."""
    return await self.client.request("/api/sources/raw", {"key": key}, parse_json=False)

  async def source_lines(self, key: str) -> list[dict[str, Any]] | None:
    """Per-line records (`line`, `code`) from the structured source endpoint."""
    data = await self.client.request("/api/sources/show", {"key": key})
    sources = data.get("sources") if isinstance(data, dict) else None
    return sources if isinstance(sources, list) else None
