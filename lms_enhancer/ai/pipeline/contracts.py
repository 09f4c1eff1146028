"""Result contracts produced by the enhancement pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
  # Stored JSON uses the camelCase keys the LMS frontend already reads.
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WikiLink(_CamelModel):
  """Encyclopedia link attached to an emphasized term."""

  text: str
  url: str
  description: str = ""


class VideoRef(_CamelModel):
  """Video reference attached to a key concept."""

  title: str
  video_id: str
  url: str
  description: str = ""


class KeyConcept(_CamelModel):
  """A notable term of the module with its optional references."""

  concept: str
  definition: str
  wikipedia_links: list[WikiLink] = Field(default_factory=list)
  youtube_videos: list[VideoRef] = Field(default_factory=list)


class EnhancementResult(_CamelModel):
  """Output written back to the module record."""

  concise_content: str
  detailed_content: str
  key_concepts: list[KeyConcept] = Field(default_factory=list)

  @model_validator(mode="after")
  def _unique_concepts(self) -> EnhancementResult:
    seen: set[str] = set()
    for concept in self.key_concepts:
      key = concept.concept.casefold()
      if key in seen:
        raise ValueError(f"Duplicate key concept '{concept.concept}'.")
      seen.add(key)
    return self

  def key_concepts_payload(self) -> list[dict[str, Any]]:
    """Serialize the key concepts for the module's JSON column."""
    return [concept.model_dump(by_alias=True) for concept in self.key_concepts]
