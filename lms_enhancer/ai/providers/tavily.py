"""Tavily web search provider implementation."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.concurrency import run_in_threadpool
from tavily import TavilyClient

from lms_enhancer.ai.errors import NoResultsError, classify_external_error
from lms_enhancer.ai.providers.base import SearchSnippet

logger = logging.getLogger(__name__)


class TavilyProvider:
  """Web search through the Tavily API."""

  def __init__(self, api_key: str | None) -> None:
    if not api_key:
      raise ValueError("Tavily API key is required.")
    self._client = TavilyClient(api_key=api_key)

  async def search(self, query: str, max_results: int = 5) -> list[SearchSnippet]:
    """Return ranked snippets for the query."""
    try:
      # Tavily client is synchronous
      response: dict[str, Any] = await run_in_threadpool(self._client.search, query=query, max_results=max_results, search_depth="basic")
    except Exception as exc:
      raise classify_external_error(exc, service="tavily") from exc

    results = response.get("results") or []
    snippets = [SearchSnippet(title=str(item.get("title") or ""), url=str(item.get("url") or ""), snippet=str(item.get("content") or "")) for item in results if item.get("url")]
    if not snippets:
      raise NoResultsError(f"tavily: no results for '{query}'")

    logger.info("Tavily search returned %d results for query: '%s'", len(snippets), query)
    return snippets
