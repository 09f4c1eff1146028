"""Test configuration and shared fakes for the external services."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from collections.abc import Callable  # noqa: E402

import pytest  # noqa: E402

from lms_enhancer.ai.backoff import RetryPolicy  # noqa: E402
from lms_enhancer.ai.providers.base import AIModel, EncyclopediaArticle, ModelResponse, SimpleModelResponse, VideoHit  # noqa: E402

DETAILED_MARKER = "Készíts részletes"
CONCISE_MARKER = "Készíts tömör"
CONCEPTS_MARKER = "Gyűjtsd ki"

DETAILED_TEXT = """## Ívhegesztés a gyakorlatban

A **hegesztés** során két fémdarabot olvasztással egyesítünk. Az **elektróda** vezeti az áramot,
a **varrat** minősége a beállításoktól függ. A munka előtt mindig ellenőrizzük a védőeszközöket,
és a munkadarabot megtisztítjuk a szennyeződésektől.

| Paraméter | Jellemző érték |
|-----------|----------------|
| Áramerősség | 80-120 A |
| Elektróda átmérő | 2,5-3,2 mm |

```mermaid
flowchart TD
A[Előkészítés] --> B[**hegesztés**]
B --> C[Ellenőrzés]
```

Gyakorlati példa: egy acélkeret sarokvarratának elkészítése lépésről lépésre."""

CONCISE_TEXT = "A **hegesztés** fémek oldhatatlan kötése. Az **elektróda** vezeti az áramot."


class FakeModel(AIModel):
  """Routes prompts by their opening instruction and records every call."""

  name = "fake-model"

  def __init__(self, *, detailed: str | Exception = DETAILED_TEXT, concise: str | Exception = CONCISE_TEXT, concepts: str | Exception = '[{"concept": "hegesztés", "definition": "Fémek oldhatatlan kötése."}]') -> None:
    self.responses = {DETAILED_MARKER: detailed, CONCISE_MARKER: concise, CONCEPTS_MARKER: concepts}
    self.calls: list[tuple[str, str | None]] = []

  async def generate(self, prompt: str, system_instruction: str | None = None) -> ModelResponse:
    self.calls.append((prompt, system_instruction))
    for marker, response in self.responses.items():
      if prompt.startswith(marker):
        if isinstance(response, Exception):
          raise response
        return SimpleModelResponse(content=response)
    raise AssertionError(f"Unexpected prompt: {prompt[:40]}")


class FakeEncyclopedia:
  """Resolves terms from a fixed mapping of lower-cased term to article."""

  def __init__(self, articles: dict[str, EncyclopediaArticle] | None = None, *, failing: set[str] | None = None) -> None:
    self.articles = articles or {}
    self.failing = failing or set()
    self.lookups: list[str] = []

  async def resolve(self, term: str) -> EncyclopediaArticle | None:
    self.lookups.append(term)
    if term.lower() in self.failing:
      raise RuntimeError(f"lookup failed for {term}")
    return self.articles.get(term.lower())


class FakeVideoSearch:
  """Returns two videos per query unless the query matches a failure predicate."""

  def __init__(self, fails_for: Callable[[str], bool] | None = None) -> None:
    self.fails_for = fails_for or (lambda query: False)
    self.queries: list[str] = []

  async def search(self, query: str, max_results: int = 5) -> list[VideoHit]:
    self.queries.append(query)
    if self.fails_for(query):
      raise RuntimeError("Internal error from video backend")
    slug = query.split(" ")[0]
    return [
      VideoHit(video_id=f"{slug}-1", title=f"{slug} bemutató", description="Első videó"),
      VideoHit(video_id=f"{slug}-2", title=f"{slug} gyakorlat", description="Második videó"),
    ]


async def no_sleep(_seconds: float) -> None:
  return None


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def no_retry() -> RetryPolicy:
  return RetryPolicy(delays=(), timeout=5.0)


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel()


@pytest.fixture
def welding_encyclopedia() -> FakeEncyclopedia:
  return FakeEncyclopedia(
    {
      "hegesztés": EncyclopediaArticle(title="Hegesztés", url="https://hu.wikipedia.org/wiki/Hegesztés", description="Fémek oldhatatlan kötése."),
      "elektróda": EncyclopediaArticle(title="Elektróda", url="https://hu.wikipedia.org/wiki/Elektróda", description=""),
    }
  )
