"""Search query construction and cleanup for web and video search."""

from __future__ import annotations

import re
from typing import Literal

from lms_enhancer.ai.enrichment.fields import get_field_profile, title_terms

QueryMode = Literal["concise", "detailed"]

MAX_QUERY_CHARS = 200
MAX_ESSENTIAL_WORDS = 15
MIN_QUERY_CHARS = 10

# Instruction verbs that leak from prompt text into search queries.
INSTRUCTION_BLACKLIST = frozenset({"elemezd", "azonosítsd", "válaszolj", "formátumban", "generálj", "készíts"})

# Generic educational vocabulary worth keeping as search terms whatever the field.
TECHNICAL_TERMS: tuple[str, ...] = (
  "hegesztés",
  "szerkezet",
  "anyag",
  "technológia",
  "módszer",
  "eljárás",
  "biztonság",
  "minőség",
  "ellenőrzés",
  "mérés",
  "tulajdonság",
  "alkalmazás",
  "gyakorlat",
  "elméleti",
  "szakmai",
  "ismeretek",
  "készségek",
  "kompetencia",
)

_LEAKAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
  re.compile(r"Elemezd.*?JSON formátumban:?", re.IGNORECASE | re.DOTALL),
  re.compile(r"Válaszolj.*?formátumban:?", re.IGNORECASE | re.DOTALL),
  re.compile(r"(?:respond|answer|reply)\b[^.\n]*\bJSON\b[^.\n]*[.:]?", re.IGNORECASE),
  re.compile(r"\{[^}]*\}"),
)
_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"\w+")


def key_terms(title: str, content: str, field_name: str, subject_context: str | None = None) -> list[str]:
  """Return title words plus field and technical vocabulary found in the text, order preserved."""
  text = f"{title} {content} {subject_context or ''}".lower()
  terms = title_terms(title)
  vocabulary = get_field_profile(field_name).vocabulary + TECHNICAL_TERMS
  for term in vocabulary:
    if term in text and term not in terms:
      terms.append(term)
  return terms


def _is_blacklisted(word: str) -> bool:
  return any(token.lower() in INSTRUCTION_BLACKLIST for token in _TOKEN_RE.findall(word))


def _cap_on_word_boundary(text: str, limit: int) -> str:
  if len(text) <= limit:
    return text
  cut = text[:limit]
  if " " in cut:
    cut = cut.rsplit(" ", 1)[0]
  return cut.strip()


def trim(raw_query: str) -> str:
  """Strip instruction leakage from a query and cap it to a searchable size."""
  text = raw_query
  for pattern in _LEAKAGE_PATTERNS:
    text = pattern.sub(" ", text)
  text = _WHITESPACE_RE.sub(" ", text).strip()

  words = [word for word in text.split(" ") if word and not _is_blacklisted(word)]
  text = " ".join(words)

  if len(text) > MAX_QUERY_CHARS:
    essential = [word for word in words if len(word) > 3]
    text = " ".join(essential[:MAX_ESSENTIAL_WORDS])

  return _cap_on_word_boundary(text, MAX_QUERY_CHARS)


def build_queries(mode: QueryMode, title: str, content: str, field_name: str, subject_context: str | None = None) -> list[str]:
  """Build the ordered web search queries for a generation mode."""
  terms = key_terms(title, content, field_name, subject_context)
  lead_terms = " ".join(terms[:2])
  context = subject_context or (get_field_profile(field_name).vocabulary[:1] or ("",))[0]
  anchor = context or (terms[0] if terms else title)

  if mode == "concise":
    candidates = [
      f"{title} {context} tananyag",
      f"{lead_terms} oktatás módszertan",
      f"{anchor} szakmai képzés alapok",
      f"{lead_terms} gyakorlati alkalmazás",
    ]
  else:
    candidates = [
      f"{title} {context} részletes magyarázat",
      f"{lead_terms} elméleti háttér szakmai",
      f"{lead_terms} technikai követelmények",
      f"{anchor} gyakorlati példák esettanulmány",
      f"{lead_terms} szabványok előírások",
      f"{anchor} szakmai kompetenciák készségek",
    ]

  queries: list[str] = []
  for candidate in candidates:
    query = trim(candidate)
    if len(query) < MIN_QUERY_CHARS or query in queries:
      continue
    queries.append(query)
  return queries
