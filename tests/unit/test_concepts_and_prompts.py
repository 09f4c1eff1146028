"""Unit tests for key concept extraction, result contracts and prompt building."""

from __future__ import annotations

import pytest
from conftest import FakeModel
from pydantic import ValidationError

from lms_enhancer.ai.enrichment.concepts import attach_links, extract_key_concepts, merge_concepts
from lms_enhancer.ai.pipeline.contracts import EnhancementResult, KeyConcept, WikiLink
from lms_enhancer.ai.pipeline.prompts import DEFAULT_SYSTEM_MESSAGE, build_context_line, build_sources_section, build_system_instruction
from lms_enhancer.ai.providers.base import SearchSnippet


@pytest.mark.anyio
async def test_extract_key_concepts_tops_up_from_bold_terms(no_retry) -> None:
  model = FakeModel(concepts='```json\n[{"concept": "Varrat", "definition": "Két fém kötése."}]\n```')
  concepts = await extract_key_concepts(model, title="Ívhegesztés", text="A **varrat** és az **elektróda** fontos.", field_name="welding", limit=3, policy=no_retry)

  assert [concept.concept for concept in concepts] == ["Varrat", "elektróda", "ívhegesztés"]
  assert concepts[0].definition == "Két fém kötése."
  assert concepts[1].definition == "Szakmai fogalom: elektróda"


def test_merge_concepts_dedupes_case_insensitively() -> None:
  concepts = merge_concepts([("Hegesztés", ""), ("hegesztés", "más"), ("**Varrat**", "")], 5)
  assert [concept.concept for concept in concepts] == ["Hegesztés", "Varrat"]


def test_attach_links_matches_concept_text() -> None:
  links = [WikiLink(text="Varrat", url="https://hu.wikipedia.org/wiki/Varrat"), WikiLink(text="varrat", url="https://hu.wikipedia.org/wiki/Varrat")]
  attached = attach_links([KeyConcept(concept="varrat", definition="x"), KeyConcept(concept="ív", definition="y")], links)
  assert len(attached[0].wikipedia_links) == 1
  assert attached[1].wikipedia_links == []


def test_result_rejects_duplicate_concepts() -> None:
  with pytest.raises(ValidationError):
    EnhancementResult(concise_content="a", detailed_content="b", key_concepts=[KeyConcept(concept="Ív", definition="x"), KeyConcept(concept="ív", definition="y")])


def test_result_serializes_with_camel_case_keys() -> None:
  result = EnhancementResult(concise_content="a", detailed_content="b")
  assert result.model_dump(by_alias=True) == {"conciseContent": "a", "detailedContent": "b", "keyConcepts": []}


def test_system_instruction_carries_module_context() -> None:
  context = build_context_line("Szakács", "Magyar konyha", 4)
  assert context == "Szakma: Szakács | Tantárgy: Magyar konyha | 4. modul"
  assert build_system_instruction(None, context) == f"{DEFAULT_SYSTEM_MESSAGE}\n\nKONTEXTUS: {context}"
  assert build_system_instruction("  ", "") == DEFAULT_SYSTEM_MESSAGE


def test_sources_section_keeps_substantial_snippets_only() -> None:
  snippets = [
    SearchSnippet(title="Rövid", url="https://a.hu", snippet="túl rövid"),
    SearchSnippet(title="Lecsó recept", url="https://b.hu", snippet="A lecsó a magyar konyha klasszikus egytálétele paprikával és paradicsommal."),
  ]
  section = build_sources_section(snippets)
  assert section.startswith("\n\n## További információk")
  assert "*Lecsó recept*" in section
  assert "*Forrás: https://b.hu*" in section
  assert "Rövid" not in section
  assert build_sources_section(snippets[:1]) == ""
