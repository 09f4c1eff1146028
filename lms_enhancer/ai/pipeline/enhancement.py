"""Five-stage module enhancement pipeline.

Stages run in a fixed order inside the queue worker:

1. detailed content (LLM, optionally grounded by web search) - the only fatal stage,
2. concise content from the raw text (falls back to the raw text),
3. encyclopedia links on both texts (falls back to unlinked text),
4. key concepts with videos (falls back to concepts without videos),
5. diagram sanitization on both texts, after every link rewrite.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from lms_enhancer.ai.backoff import RetryPolicy, retry_with_backoff
from lms_enhancer.ai.enrichment.concepts import attach_links, extract_key_concepts
from lms_enhancer.ai.enrichment.diagrams import sanitize
from lms_enhancer.ai.enrichment.fields import detect_field
from lms_enhancer.ai.enrichment.queries import build_queries
from lms_enhancer.ai.enrichment.video_enricher import VideoEnricher
from lms_enhancer.ai.enrichment.wikipedia_linker import LinkingOutcome, WikipediaLinker
from lms_enhancer.ai.errors import DegradedStageError, EnhancementError, FatalStageError
from lms_enhancer.ai.pipeline.contracts import EnhancementResult, KeyConcept, WikiLink
from lms_enhancer.ai.pipeline.profiles import GENERATION_PROFILES, GenerationProfile, get_generation_profile
from lms_enhancer.ai.pipeline.prompts import build_concise_prompt, build_context_line, build_detailed_prompt, build_sources_section, build_system_instruction
from lms_enhancer.ai.providers.base import AIModel, EncyclopediaClient, SearchSnippet, VideoSearchClient, WebSearchClient
from lms_enhancer.config import Settings
from lms_enhancer.jobs.models import EnhancementTask

logger = logging.getLogger(__name__)

SNIPPETS_PER_QUERY = 2


@dataclass(frozen=True)
class PipelineOptions:
  """Tunables of one pipeline instance."""

  profile: GenerationProfile = field(default_factory=lambda: GENERATION_PROFILES["balanced"])
  llm_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy((5.0, 20.0, 50.0), 120.0))
  search_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy((2.0, 5.0), 20.0))
  wikipedia_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy((0.5, 1.0), 10.0))
  video_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy((2.0, 5.0), 15.0))
  web_search_max_results: int = 10
  videos_per_concept: int = 2
  max_key_concepts: int = 3
  youtube_min_interval_seconds: float = 1.0

  @classmethod
  def from_settings(cls, settings: Settings) -> PipelineOptions:
    return cls(
      profile=get_generation_profile(settings.generation_mode),
      llm_policy=RetryPolicy(settings.llm_retry_delays, settings.llm_timeout_seconds),
      search_policy=RetryPolicy(settings.search_retry_delays, settings.search_timeout_seconds),
      wikipedia_policy=RetryPolicy(settings.wikipedia_retry_delays, settings.wikipedia_timeout_seconds),
      video_policy=RetryPolicy(settings.video_retry_delays, settings.video_timeout_seconds),
      web_search_max_results=settings.web_search_max_results,
      videos_per_concept=settings.videos_per_concept,
      max_key_concepts=settings.max_key_concepts,
      youtube_min_interval_seconds=settings.youtube_min_interval_seconds,
    )


class EnhancementPipeline:
  """Turn a module's raw text into an EnhancementResult."""

  def __init__(
    self,
    model: AIModel,
    encyclopedia: EncyclopediaClient,
    *,
    video_search: VideoSearchClient | None = None,
    web_search: WebSearchClient | None = None,
    options: PipelineOptions | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self._model = model
    self._web_search = web_search
    self._options = options or PipelineOptions()
    self._linker = WikipediaLinker(encyclopedia, policy=self._options.wikipedia_policy, delay_seconds=self._options.profile.wikipedia_delay_seconds, sleep=sleep)
    self._videos: VideoEnricher | None = None
    if video_search is not None:
      self._videos = VideoEnricher(video_search, policy=self._options.video_policy, videos_per_concept=self._options.videos_per_concept, min_interval_seconds=self._options.youtube_min_interval_seconds, sleep=sleep)

  async def run(self, task: EnhancementTask) -> EnhancementResult:
    """Run every stage; raises FatalStageError only when the detailed content cannot be produced."""
    label = f"module={task.module_id}"
    field_name = detect_field(task.title, task.raw_content, task.subject_context, task.profession_context)
    context_line = build_context_line(task.profession_context, task.subject_context, task.module_number)
    system_instruction = build_system_instruction(task.custom_system_message, context_line)
    logger.info("%s: enhancement started (task=%s field=%s mode=%s)", label, task.task_id, field_name, self._options.profile.name)

    started = time.monotonic()
    detailed = await self._detailed_content(task, field_name, context_line, system_instruction, label)
    concise = await self._concise_content(task, system_instruction, label)

    concise_linked = await self._link(concise, field_name, f"{label} stage=linking text=concise")
    detailed_linked = await self._link(detailed, field_name, f"{label} stage=linking text=detailed")

    # Concepts come from the unlinked text so bold spans are still recognizable.
    key_concepts = await self._key_concepts(task, detailed, field_name, concise_linked.links + detailed_linked.links, label)

    concise_final = sanitize(concise_linked.text)
    detailed_final = sanitize(detailed_linked.text)
    logger.info("%s stage=diagrams: sanitized both texts", label)

    if len(concise_final) >= len(detailed_final):
      logger.warning("%s: concise content (%d chars) is not shorter than detailed content (%d chars)", label, len(concise_final), len(detailed_final))

    logger.info("%s: enhancement finished in %.1fs (concepts=%d)", label, time.monotonic() - started, len(key_concepts))
    return EnhancementResult(concise_content=concise_final, detailed_content=detailed_final, key_concepts=key_concepts)

  async def _gather_grounding(self, task: EnhancementTask, field_name: str, label: str) -> list[SearchSnippet]:
    """Collect web snippets for the detailed prompt; search failures only shrink the grounding."""
    if self._web_search is None or not self._options.profile.web_search:
      return []

    collected: list[SearchSnippet] = []
    seen_urls: set[str] = set()
    for query in build_queries("detailed", task.title, task.raw_content, field_name, task.subject_context):
      try:
        results = await retry_with_backoff(self._web_search.search, query, 5, policy=self._options.search_policy, label=f"{label} stage=grounding query='{query}'")
      except EnhancementError as exc:
        logger.info("%s stage=grounding: search failed for '%s': %s", label, query, exc)
        continue

      for snippet in results[:SNIPPETS_PER_QUERY]:
        if snippet.url in seen_urls:
          continue
        seen_urls.add(snippet.url)
        collected.append(snippet)
      if len(collected) >= self._options.web_search_max_results:
        break

    logger.info("%s stage=grounding: collected %d snippets", label, len(collected))
    return collected

  async def _detailed_content(self, task: EnhancementTask, field_name: str, context_line: str, system_instruction: str, label: str) -> str:
    snippets = await self._gather_grounding(task, field_name, label)
    prompt = build_detailed_prompt(task.title, task.raw_content, context_line, snippets)
    try:
      response = await retry_with_backoff(self._model.generate, prompt, system_instruction, policy=self._options.llm_policy, label=f"{label} stage=detailed_content")
    except EnhancementError as exc:
      logger.error("%s stage=detailed_content: failed after %d attempts: %s", label, self._options.llm_policy.max_attempts, exc)
      raise FatalStageError("detailed_content", str(exc)) from exc

    content = response.content.strip()
    if not content:
      raise FatalStageError("detailed_content", "the model returned empty content")

    logger.info("%s stage=detailed_content: %d chars", label, len(content))
    return content + build_sources_section(snippets)

  async def _concise_content(self, task: EnhancementTask, system_instruction: str, label: str) -> str:
    prompt = build_concise_prompt(task.title, task.raw_content)
    try:
      response = await retry_with_backoff(self._model.generate, prompt, system_instruction, policy=self._options.llm_policy, label=f"{label} stage=concise_content")
      content = response.content.strip()
      if not content:
        raise DegradedStageError("concise_content", "the model returned empty content")
    except EnhancementError as exc:
      logger.warning("%s stage=concise_content: degraded to raw content: %s", label, exc)
      return task.raw_content

    logger.info("%s stage=concise_content: %d chars", label, len(content))
    return content

  async def _link(self, text: str, field_name: str, label: str) -> LinkingOutcome:
    try:
      return await self._linker.link_keywords(text, field_name, self._options.profile.max_keywords, label=label)
    except Exception:  # noqa: BLE001
      logger.warning("%s: degraded to unlinked text", label, exc_info=True)
      return LinkingOutcome(text=text)

  async def _key_concepts(self, task: EnhancementTask, detailed: str, field_name: str, links: list[WikiLink], label: str) -> list[KeyConcept]:
    stage_label = f"{label} stage=key_concepts"
    try:
      concepts = await extract_key_concepts(self._model, title=task.title, text=detailed, field_name=field_name, limit=self._options.max_key_concepts, policy=self._options.llm_policy, label=stage_label)
    except Exception:  # noqa: BLE001
      logger.warning("%s: degraded to no key concepts", stage_label, exc_info=True)
      return []

    concepts = attach_links(concepts, links)
    if self._videos is None:
      logger.info("%s stage=videos: no video search client configured", label)
      return concepts

    try:
      return await self._videos.enrich_concepts(concepts, task.title, task.raw_content, field_name, label=f"{label} stage=videos")
    except Exception:  # noqa: BLE001
      logger.warning("%s stage=videos: degraded to concepts without videos", label, exc_info=True)
      return concepts
