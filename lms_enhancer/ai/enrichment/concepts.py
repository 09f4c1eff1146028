"""Key concept extraction from generated content."""

from __future__ import annotations

import logging
from typing import Any

from lms_enhancer.ai.backoff import RetryPolicy, retry_with_backoff
from lms_enhancer.ai.enrichment.fields import get_field_profile, title_terms
from lms_enhancer.ai.enrichment.wikipedia_linker import extract_candidates
from lms_enhancer.ai.errors import EnhancementError
from lms_enhancer.ai.json_parser import parse_json_with_fallback
from lms_enhancer.ai.pipeline.contracts import KeyConcept, WikiLink
from lms_enhancer.ai.pipeline.prompts import build_key_concepts_prompt
from lms_enhancer.ai.providers.base import AIModel

logger = logging.getLogger(__name__)

MAX_CONCEPT_CHARS = 80


def default_definition(concept: str) -> str:
  return f"Szakmai fogalom: {concept}"


def _coerce_items(payload: Any) -> list[tuple[str, str]]:
  """Accept ``[{concept, definition}]``, ``[str]`` or ``{"concepts": [...]}`` shapes."""
  if isinstance(payload, dict):
    payload = payload.get("concepts") or payload.get("keyConcepts") or []
  if not isinstance(payload, list):
    return []

  items: list[tuple[str, str]] = []
  for entry in payload:
    if isinstance(entry, str):
      items.append((entry, ""))
    elif isinstance(entry, dict):
      concept = entry.get("concept") or entry.get("name") or entry.get("term")
      if isinstance(concept, str):
        definition = entry.get("definition")
        items.append((concept, definition if isinstance(definition, str) else ""))
  return items


def fallback_concepts(title: str, text: str, field_name: str) -> list[str]:
  """Bold terms of the text first, then field vocabulary present in the text, then title words."""
  lowered = text.lower()
  vocabulary = [term for term in get_field_profile(field_name).vocabulary if term in lowered]
  return extract_candidates(text) + vocabulary + title_terms(title)


def merge_concepts(candidates: list[tuple[str, str]], limit: int) -> list[KeyConcept]:
  """De-duplicate concepts case-insensitively and cap the list, keeping first occurrences."""
  seen: set[str] = set()
  concepts: list[KeyConcept] = []
  for raw_concept, raw_definition in candidates:
    concept = " ".join(raw_concept.split()).strip(" *_#:")[:MAX_CONCEPT_CHARS]
    key = concept.casefold()
    if not concept or key in seen:
      continue
    seen.add(key)
    definition = " ".join(raw_definition.split()) or default_definition(concept)
    concepts.append(KeyConcept(concept=concept, definition=definition))
    if len(concepts) >= limit:
      break
  return concepts


async def extract_key_concepts(model: AIModel, *, title: str, text: str, field_name: str, limit: int, policy: RetryPolicy, label: str = "key_concepts") -> list[KeyConcept]:
  """Ask the model for the key concepts of a text, topping up from heuristics when it falls short."""
  items: list[tuple[str, str]] = []
  prompt = build_key_concepts_prompt(title, text, field_name, limit)
  try:
    response = await retry_with_backoff(model.generate, prompt, policy=policy, label=label)
    items = _coerce_items(parse_json_with_fallback(response.content))
  except (EnhancementError, ValueError) as exc:
    logger.warning("%s: model extraction failed, using heuristic concepts: %s", label, exc)

  heuristics = [(term, "") for term in fallback_concepts(title, text, field_name)]
  concepts = merge_concepts(items + heuristics, limit)
  logger.info("%s: extracted %d concepts (%d from the model)", label, len(concepts), min(len(items), len(concepts)))
  return concepts


def attach_links(concepts: list[KeyConcept], links: list[WikiLink]) -> list[KeyConcept]:
  """Attach encyclopedia links whose text matches a concept."""
  by_text: dict[str, list[WikiLink]] = {}
  for link in links:
    bucket = by_text.setdefault(link.text.casefold(), [])
    if all(existing.url != link.url for existing in bucket):
      bucket.append(link)
  return [concept.model_copy(update={"wikipedia_links": by_text.get(concept.concept.casefold(), [])}) for concept in concepts]
