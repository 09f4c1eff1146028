"""Hungarian Wikipedia lookups through the REST summary endpoint."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from lms_enhancer.ai.errors import ExternalServiceError, InvalidResponseError, RateLimitedError, TimeoutExternalError
from lms_enhancer.ai.providers.base import EncyclopediaArticle

logger = logging.getLogger(__name__)

_USER_AGENT = "lms-enhancer/0.1 (module enrichment service)"


class WikipediaProvider:
  """Resolve terms to Wikipedia articles."""

  def __init__(self, base_url: str = "https://hu.wikipedia.org", *, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._base_url = base_url.rstrip("/")
    self._client = httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=transport, headers={"user-agent": _USER_AGENT, "accept": "application/json"})

  async def aclose(self) -> None:
    await self._client.aclose()

  async def resolve(self, term: str) -> EncyclopediaArticle | None:
    """Return the article summary for the term, or None when no article exists."""
    title = term.strip().replace(" ", "_")
    if not title:
      return None

    path = f"/api/rest_v1/page/summary/{quote(title, safe='')}"
    try:
      response = await self._client.get(path, follow_redirects=True)
    except httpx.TimeoutException as exc:
      raise TimeoutExternalError(f"wikipedia: lookup of '{term}' timed out") from exc
    except httpx.HTTPError as exc:
      raise ExternalServiceError(f"wikipedia: {exc}") from exc

    if response.status_code == 404:
      logger.info("No Wikipedia article for '%s'", term)
      return None
    if response.status_code == 429:
      raise RateLimitedError(f"wikipedia: 429 Too Many Requests for '{term}'")
    if response.status_code >= 400:
      raise ExternalServiceError(f"wikipedia: HTTP {response.status_code} for '{term}'")

    try:
      payload = response.json()
    except ValueError as exc:
      raise InvalidResponseError(f"wikipedia: invalid JSON for '{term}'") from exc

    # Disambiguation pages are not a definition of the term.
    if payload.get("type") == "disambiguation":
      logger.info("Wikipedia entry for '%s' is a disambiguation page", term)
      return None

    url = ((payload.get("content_urls") or {}).get("desktop") or {}).get("page")
    if not url:
      url = f"{self._base_url}/wiki/{quote(title)}"

    description = str(payload.get("extract") or payload.get("description") or "").strip()
    return EncyclopediaArticle(title=str(payload.get("title") or term), url=url, description=description[:300])
