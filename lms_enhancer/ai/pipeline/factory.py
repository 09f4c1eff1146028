"""Build the enhancement pipeline and its external clients from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lms_enhancer.ai.pipeline.enhancement import EnhancementPipeline, PipelineOptions
from lms_enhancer.ai.providers.gemini import GeminiProvider
from lms_enhancer.ai.providers.tavily import TavilyProvider
from lms_enhancer.ai.providers.wikipedia import WikipediaProvider
from lms_enhancer.ai.providers.youtube import YouTubeProvider
from lms_enhancer.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class PipelineResources:
  """The pipeline plus the HTTP clients that must be closed on shutdown."""

  pipeline: EnhancementPipeline
  http_clients: list[WikipediaProvider | YouTubeProvider] = field(default_factory=list)

  async def aclose(self) -> None:
    for client in self.http_clients:
      await client.aclose()


def build_pipeline(settings: Settings) -> PipelineResources:
  """Wire providers into a pipeline; web and video search are optional."""
  model = GeminiProvider(api_key=settings.gemini_api_key).get_model(settings.gemini_model)
  wikipedia = WikipediaProvider(settings.wikipedia_base_url, timeout=settings.wikipedia_timeout_seconds)
  http_clients: list[WikipediaProvider | YouTubeProvider] = [wikipedia]

  youtube: YouTubeProvider | None = None
  if settings.youtube_api_key:
    youtube = YouTubeProvider(settings.youtube_api_key, settings.youtube_base_url, timeout=settings.video_timeout_seconds)
    http_clients.append(youtube)
  else:
    logger.warning("LMS_YOUTUBE_API_KEY is not set; key concepts will have no videos.")

  tavily: TavilyProvider | None = None
  if settings.tavily_api_key:
    tavily = TavilyProvider(settings.tavily_api_key)
  else:
    logger.warning("LMS_TAVILY_API_KEY is not set; detailed content will not be grounded by web search.")

  pipeline = EnhancementPipeline(model, wikipedia, video_search=youtube, web_search=tavily, options=PipelineOptions.from_settings(settings))
  logger.info("Enhancement pipeline ready (model=%s mode=%s)", settings.gemini_model, settings.generation_mode)
  return PipelineResources(pipeline=pipeline, http_clients=http_clients)
