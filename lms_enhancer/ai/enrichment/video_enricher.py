"""Attach ranked YouTube videos to key concepts."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from lms_enhancer.ai.backoff import RetryPolicy, retry_with_backoff
from lms_enhancer.ai.enrichment.fields import field_categories, title_terms
from lms_enhancer.ai.enrichment.queries import trim
from lms_enhancer.ai.errors import EnhancementError
from lms_enhancer.ai.pipeline.contracts import KeyConcept, VideoRef
from lms_enhancer.ai.providers.base import VideoHit, VideoSearchClient

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 100
MAX_DESCRIPTION_CHARS = 200


def _clip(text: str, limit: int) -> str:
  text = " ".join(text.split())
  if len(text) <= limit:
    return text
  return text[: limit - 3].rstrip() + "..."


def to_video_refs(hits: list[VideoHit], limit: int) -> list[VideoRef]:
  """Keep the first ``limit`` distinct videos, clipping titles and descriptions."""
  refs: list[VideoRef] = []
  seen: set[str] = set()
  for hit in hits:
    if hit.video_id in seen:
      continue
    seen.add(hit.video_id)
    refs.append(VideoRef(title=_clip(hit.title, MAX_TITLE_CHARS), video_id=hit.video_id, url=hit.url, description=_clip(hit.description, MAX_DESCRIPTION_CHARS)))
    if len(refs) >= limit:
      break
  return refs


def _pick_category(concept: str, categories: list[str], index: int) -> str:
  """Rotate through the categories, skipping ones the concept already contains."""
  folded = concept.casefold()
  for offset in range(len(categories)):
    category = categories[(index + offset) % len(categories)]
    if category.casefold() not in folded:
      return category
  return ""


class VideoEnricher:
  """Issue one ranked video search per key concept with per-concept failure isolation.

  Results are cached per query for one ``enrich_concepts`` run and consecutive API
  calls are spaced by ``min_interval_seconds``.
  """

  def __init__(
    self,
    client: VideoSearchClient,
    *,
    policy: RetryPolicy,
    videos_per_concept: int = 2,
    min_interval_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
  ) -> None:
    self._client = client
    self._policy = policy
    self._videos_per_concept = videos_per_concept
    self._min_interval_seconds = min_interval_seconds
    self._sleep = sleep
    self._clock = clock
    self._cache: dict[str, list[VideoHit]] = {}
    self._last_call: float | None = None

  async def _throttle(self) -> None:
    if self._last_call is None or self._min_interval_seconds <= 0:
      return
    elapsed = self._clock() - self._last_call
    if elapsed < self._min_interval_seconds:
      await self._sleep(self._min_interval_seconds - elapsed)

  async def _search(self, query: str, label: str) -> list[VideoHit]:
    cache_key = query.casefold()
    if cache_key in self._cache:
      logger.debug("%s: cache hit for '%s'", label, query)
      return self._cache[cache_key]

    await self._throttle()
    try:
      hits = await retry_with_backoff(self._client.search, query, policy=self._policy, label=f"{label} '{query}'", sleep=self._sleep)
    finally:
      self._last_call = self._clock()
    self._cache[cache_key] = hits
    return hits

  async def enrich_concepts(self, concepts: list[KeyConcept], title: str, content: str, field_name: str, *, label: str = "videos") -> list[KeyConcept]:
    """Return the concepts in the same order with ``youtube_videos`` populated where possible."""
    self._cache.clear()
    categories = field_categories(field_name, title) or title_terms(content)[:3] or [title]
    enriched: list[KeyConcept] = []
    for index, concept in enumerate(concepts):
      category = _pick_category(concept.concept, categories, index)
      query = trim(f"{concept.concept} {category}".strip())
      try:
        hits = await self._search(query, label)
      except EnhancementError as exc:
        logger.warning("%s: search for concept '%s' failed, continuing without videos: %s", label, concept.concept, exc)
        enriched.append(concept.model_copy(update={"youtube_videos": []}))
        continue

      videos = to_video_refs(hits, self._videos_per_concept)
      logger.info("%s: concept '%s' got %d videos", label, concept.concept, len(videos))
      enriched.append(concept.model_copy(update={"youtube_videos": videos}))
    return enriched
