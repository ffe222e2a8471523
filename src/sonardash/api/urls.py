"""Web UI links for server entities."""

from urllib.parse import urlencode


def _base(host: str) -> str:
  return host[:-1] if host.endswith("/") else host


def issue_url(host: str, issue_key: str, project_key: str | None = None) -> str:
  params = {"id": project_key} if project_key else {}
  params.update({"open": issue_key, "issues": issue_key})
  return f"{_base(host)}/project/issues?{urlencode(params)}"


def hotspot_url(host: str, hotspot_key: str, project_key: str | None = None) -> str:
  params = {"id": project_key} if project_key else {}
  params.update({"hotspots": hotspot_key, "open": hotspot_key})
  return f"{_base(host)}/security_hotspots?{urlencode(params)}"


def rule_url(host: str, rule_key: str) -> str:
  return f"{_base(host)}/coding_rules?{urlencode({'open': rule_key, 'rule_key': rule_key})}"


def file_url(host: str, component_key: str, branch: str | None = None) -> str:
  params = {"id": component_key}
  if branch:
    params["branch"] = branch
  return f"{_base(host)}/code?{urlencode(params)}"
