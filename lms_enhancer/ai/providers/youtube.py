"""YouTube Data API v3 search provider."""

from __future__ import annotations

import html
import logging
from typing import Any

import httpx

from lms_enhancer.ai.errors import ExternalServiceError, InvalidResponseError, QuotaExceededError, RateLimitedError, TimeoutExternalError
from lms_enhancer.ai.providers.base import VideoHit

logger = logging.getLogger(__name__)


class YouTubeProvider:
  """Ranked Hungarian video search."""

  def __init__(self, api_key: str | None, base_url: str = "https://www.googleapis.com/youtube/v3", *, timeout: float = 15.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    if not api_key:
      raise ValueError("YouTube API key is required.")
    self._api_key = api_key
    self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

  async def aclose(self) -> None:
    await self._client.aclose()

  async def search(self, query: str, max_results: int = 5) -> list[VideoHit]:
    """Return ranked videos for the query, restricted to Hungarian relevance."""
    params = {
      "part": "snippet",
      "q": query,
      "type": "video",
      "maxResults": str(max_results),
      "order": "relevance",
      "regionCode": "HU",
      "relevanceLanguage": "hu",
      "key": self._api_key,
    }
    try:
      response = await self._client.get("/search", params=params)
    except httpx.TimeoutException as exc:
      raise TimeoutExternalError(f"youtube: search '{query}' timed out") from exc
    except httpx.HTTPError as exc:
      raise ExternalServiceError(f"youtube: {exc}") from exc

    if response.status_code == 429:
      raise RateLimitedError("youtube: 429 Too Many Requests")
    if response.status_code == 403:
      reason = _error_reason(response)
      if "quota" in reason.lower() or "limit" in reason.lower():
        raise QuotaExceededError(f"youtube: quota exceeded ({reason})")
      raise ExternalServiceError(f"youtube: forbidden ({reason})")
    if response.status_code >= 400:
      raise ExternalServiceError(f"youtube: HTTP {response.status_code}")

    try:
      payload = response.json()
    except ValueError as exc:
      raise InvalidResponseError("youtube: invalid JSON") from exc

    hits: list[VideoHit] = []
    for item in payload.get("items") or []:
      video_id = (item.get("id") or {}).get("videoId")
      snippet = item.get("snippet") or {}
      if not video_id:
        continue
      hits.append(
        VideoHit(
          video_id=video_id,
          title=html.unescape(str(snippet.get("title") or "")),
          description=html.unescape(str(snippet.get("description") or "")),
          channel_title=html.unescape(str(snippet.get("channelTitle") or "")),
        )
      )

    logger.info("YouTube search returned %d videos for query: '%s'", len(hits), query)
    return hits


def _error_reason(response: httpx.Response) -> str:
  try:
    payload: dict[str, Any] = response.json()
  except ValueError:
    return response.text[:200]
  errors = (payload.get("error") or {}).get("errors") or []
  if errors:
    return str(errors[0].get("reason") or "")
  return str((payload.get("error") or {}).get("message") or "")
