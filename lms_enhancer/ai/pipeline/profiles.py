"""Generation modes trading enrichment depth for speed and API quota."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class GenerationProfile:
  name: str
  max_keywords: int
  wikipedia_delay_seconds: float
  web_search: bool


GENERATION_PROFILES: Final[dict[str, GenerationProfile]] = {
  "fast": GenerationProfile("fast", max_keywords=2, wikipedia_delay_seconds=0.3, web_search=False),
  "balanced": GenerationProfile("balanced", max_keywords=3, wikipedia_delay_seconds=0.5, web_search=True),
  "quality": GenerationProfile("quality", max_keywords=5, wikipedia_delay_seconds=1.5, web_search=True),
}


def get_generation_profile(mode: str) -> GenerationProfile:
  """Return the profile for a mode name."""
  try:
    return GENERATION_PROFILES[mode]
  except KeyError as exc:
    raise ValueError(f"Unknown generation mode '{mode}'.") from exc
