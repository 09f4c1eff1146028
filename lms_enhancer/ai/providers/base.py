"""Base interfaces for the external services used by the enhancement pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol


class ModelResponse(Protocol):
  """Response contract for model outputs."""

  content: str
  usage: dict[str, int] | None


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for language models."""

  name: str

  @abstractmethod
  async def generate(self, prompt: str, system_instruction: str | None = None) -> ModelResponse:
    """Generate a response for the given prompt."""


class Provider(ABC):
  """Abstract base class for language model providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""


@dataclass(frozen=True)
class SearchSnippet:
  """One web search hit used to ground the detailed content."""

  title: str
  url: str
  snippet: str


@dataclass(frozen=True)
class EncyclopediaArticle:
  """Resolved encyclopedia entry for a term."""

  title: str
  url: str
  description: str


@dataclass(frozen=True)
class VideoHit:
  """One ranked video search result."""

  video_id: str
  title: str
  description: str
  channel_title: str = ""

  @property
  def url(self) -> str:
    return f"https://www.youtube.com/watch?v={self.video_id}"


class WebSearchClient(Protocol):
  """Interface for web search used as grounding for generated content."""

  async def search(self, query: str, max_results: int = 5) -> list[SearchSnippet]:
    """Return ranked snippets for the query."""
    ...


class EncyclopediaClient(Protocol):
  """Interface for resolving a term to an encyclopedia article."""

  async def resolve(self, term: str) -> EncyclopediaArticle | None:
    """Return the article for the term, or None when no article exists."""
    ...


class VideoSearchClient(Protocol):
  """Interface for ranked video search."""

  async def search(self, query: str, max_results: int = 5) -> list[VideoHit]:
    """Return ranked videos for the query."""
    ...
