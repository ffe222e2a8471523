"""Authenticated HTTP access to the server's REST API."""

import logging
from typing import Any

import httpx

from sonardash.errors import ApiError, TransportError

logger = logging.getLogger(__name__)

BODY_SNIPPET_LENGTH = 500


class ApiClient:
  """Thin async wrapper over httpx; no retries, errors are typed."""

  DEFAULT_TIMEOUT = 30.0

  def __init__(
    self,
    host: str,
    token: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
  ):
    self.host = host[:-1] if host.endswith("/") else host
    self._client = httpx.AsyncClient(
      auth=httpx.BasicAuth(token, ""),
      timeout=timeout,
      transport=transport,
    )

  async def __aenter__(self) -> "ApiClient":
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    await self._client.aclose()

  def url_for(self, path: str) -> str:
    return self.host + path if path.startswith("/") else f"{self.host}/{path}"

  async def request(
    self,
    path: str,
    params: dict[str, Any] | None = None,
    *,
    method: str = "GET",
    data: dict[str, Any] | None = None,
    parse_json: bool = True,
  ) -> Any:
    """Issue a request and return the parsed body.

    With `parse_json` the body must be a JSON object whatever the declared
    content type; anything else raises ApiError. Otherwise the text is returned.
    """
    url = self.url_for(path)
    query = {k: v for k, v in (params or {}).items() if v is not None}
    logger.debug("%s %s %s", method, url, query)

    try:
      response = await self._client.request(method, url, params=query, data=data)
    except httpx.TransportError as e:
      raise TransportError(e) from e

    if not response.is_success:
      raise ApiError(response.status_code, response.text[:BODY_SNIPPET_LENGTH])

    if not parse_json:
      return response.text
    content_type = response.headers.get("content-type") or "no content type"
    try:
      body = response.json()
    except ValueError as e:
      raise ApiError(response.status_code, f"Invalid JSON body ({content_type}): {e}") from e
    if not isinstance(body, dict):
      raise ApiError(response.status_code, f"Expected a JSON object, got {type(body).__name__}")
    return body
