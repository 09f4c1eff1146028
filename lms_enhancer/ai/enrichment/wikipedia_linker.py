"""Inline Wikipedia links for emphasized concepts in markdown text."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from lms_enhancer.ai.backoff import RetryPolicy, retry_with_backoff
from lms_enhancer.ai.enrichment.fields import get_field_profile
from lms_enhancer.ai.errors import EnhancementError
from lms_enhancer.ai.pipeline.contracts import WikiLink
from lms_enhancer.ai.providers.base import EncyclopediaClient

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"(```.*?```)", re.DOTALL)
_BOLD_RE = re.compile(r"\*\*([^*\n]+?)\*\*")

STOP_WORDS = frozenset(
  {
    "fontos",
    "figyelem",
    "megjegyzés",
    "példa",
    "például",
    "összefoglalás",
    "összefoglaló",
    "tipp",
    "feladat",
    "kérdés",
    "válasz",
    "definíció",
    "lépés",
    "első",
    "második",
    "harmadik",
    "igen",
    "nem",
    "vagy",
  }
)


@dataclass
class LinkingOutcome:
  """Rewritten text plus the links that were inserted."""

  text: str
  links: list[WikiLink] = field(default_factory=list)


def _outside_fences(text: str) -> list[tuple[str, bool]]:
  """Split text into (segment, is_fenced) parts."""
  return [(part, index % 2 == 1) for index, part in enumerate(_FENCE_RE.split(text)) if part]


def _is_candidate(span: str) -> bool:
  words = span.split()
  if not 1 <= len(words) <= 4:
    return False
  if len(span) < 3 or "](" in span or span.startswith("["):
    return False
  return span.casefold() not in STOP_WORDS


def extract_candidates(text: str) -> list[str]:
  """Return emphasized concept phrases in order of appearance, de-duplicated case-insensitively."""
  seen: set[str] = set()
  candidates: list[str] = []
  for segment, fenced in _outside_fences(text):
    if fenced:
      continue
    for match in _BOLD_RE.finditer(segment):
      span = match.group(1).strip()
      key = span.casefold()
      if key in seen or not _is_candidate(span):
        continue
      seen.add(key)
      candidates.append(span)
  return candidates


def _prioritize(candidates: list[str], field_name: str) -> list[str]:
  """Move candidates that share vocabulary with the field to the front, keeping order otherwise."""
  vocabulary = [term.casefold() for term in get_field_profile(field_name).vocabulary]
  if not vocabulary:
    return candidates

  def relevant(candidate: str) -> bool:
    lowered = candidate.casefold()
    return any(term in lowered or lowered in term for term in vocabulary)

  return sorted(candidates, key=lambda candidate: not relevant(candidate))


def _markdown_safe_url(url: str) -> str:
  return url.replace(" ", "%20").replace("(", "%28").replace(")", "%29")


def apply_link(text: str, term: str, url: str) -> str:
  """Rewrite every unlinked ``**term**`` outside code fences into a bold link."""
  pattern = re.compile(r"\*\*(" + re.escape(term) + r")\*\*", re.IGNORECASE)
  safe_url = _markdown_safe_url(url)
  parts: list[str] = []
  for segment, fenced in _outside_fences(text):
    if fenced:
      parts.append(segment)
      continue
    parts.append(pattern.sub(lambda match: f"**[{match.group(1)}]({safe_url})**", segment))
  return "".join(parts)


class WikipediaLinker:
  """Resolve emphasized phrases against the encyclopedia and link them in place."""

  def __init__(self, client: EncyclopediaClient, *, policy: RetryPolicy, delay_seconds: float = 0.5, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
    self._client = client
    self._policy = policy
    self._delay_seconds = delay_seconds
    self._sleep = sleep

  async def link_keywords(self, text: str, field_name: str, max_keywords: int, *, label: str = "wikipedia") -> LinkingOutcome:
    candidates = _prioritize(extract_candidates(text), field_name)
    selected = candidates[: max(max_keywords, 0)]
    if len(candidates) > len(selected):
      logger.info("%s: %d candidates over the cap of %d left unlinked", label, len(candidates) - len(selected), max_keywords)

    outcome = LinkingOutcome(text=text)
    for index, candidate in enumerate(selected):
      if index > 0 and self._delay_seconds > 0:
        await self._sleep(self._delay_seconds)

      try:
        article = await retry_with_backoff(self._client.resolve, candidate, policy=self._policy, label=f"{label} lookup '{candidate}'", sleep=self._sleep)
      except EnhancementError as exc:
        logger.warning("%s: lookup for '%s' failed, leaving it unlinked: %s", label, candidate, exc)
        continue

      if article is None or not article.url:
        logger.info("%s: no article for '%s'", label, candidate)
        continue

      outcome.text = apply_link(outcome.text, candidate, article.url)
      outcome.links.append(WikiLink(text=candidate, url=article.url, description=article.description or f"Wikipedia: {article.title}"))

    logger.info("%s: linked %d of %d candidates (field=%s)", label, len(outcome.links), len(selected), field_name)
    return outcome
