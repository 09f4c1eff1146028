"""Unit tests for module storage."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from lms_enhancer.ai.pipeline.contracts import EnhancementResult, KeyConcept, WikiLink
from lms_enhancer.schema.modules import Module
from lms_enhancer.storage.modules_repo import InMemoryModulesRepository, ModuleRecord, UnknownModuleError
from lms_enhancer.storage.postgres_modules_repo import PostgresModulesRepository

RESULT = EnhancementResult(
  concise_content="Rövid",
  detailed_content="Részletes tartalom",
  key_concepts=[KeyConcept(concept="varrat", definition="Két fém kötése.", wikipedia_links=[WikiLink(text="varrat", url="https://hu.wikipedia.org/wiki/Varrat")])],
)


@pytest.mark.anyio
async def test_in_memory_update_overwrites_content_and_publishes() -> None:
  repository = InMemoryModulesRepository([ModuleRecord(module_id=1, title="Varratok", content="régi", subject_name="Hegesztés")])
  await repository.update_module_enrichment(1, RESULT)

  stored = await repository.get_module(1)
  assert stored is not None
  assert stored.content == "Részletes tartalom"
  assert stored.detailed_content == "Részletes tartalom"
  assert stored.concise_content == "Rövid"
  assert stored.is_published is True
  assert stored.subject_name == "Hegesztés"
  assert stored.key_concepts == [
    {
      "concept": "varrat",
      "definition": "Két fém kötése.",
      "wikipediaLinks": [{"text": "varrat", "url": "https://hu.wikipedia.org/wiki/Varrat", "description": ""}],
      "youtubeVideos": [],
    }
  ]


@pytest.mark.anyio
async def test_in_memory_update_of_unknown_module_raises() -> None:
  with pytest.raises(UnknownModuleError):
    await InMemoryModulesRepository().update_module_enrichment(9, RESULT)


def _session_factory(session: AsyncMock) -> MagicMock:
  context = MagicMock()
  context.__aenter__ = AsyncMock(return_value=session)
  context.__aexit__ = AsyncMock(return_value=False)
  return MagicMock(return_value=context)


@pytest.mark.anyio
async def test_postgres_update_sets_columns_and_commits() -> None:
  module = Module(id=3, subject_id=1, title="Varratok", content="régi", is_published=False)
  session = AsyncMock()
  session.get.return_value = module

  await PostgresModulesRepository(_session_factory(session)).update_module_enrichment(3, RESULT)

  assert module.content == "Részletes tartalom"
  assert module.concise_content == "Rövid"
  assert module.key_concepts_data[0]["wikipediaLinks"][0]["url"] == "https://hu.wikipedia.org/wiki/Varrat"
  assert module.is_published is True
  session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_postgres_update_of_missing_module_raises() -> None:
  session = AsyncMock()
  session.get.return_value = None
  with pytest.raises(UnknownModuleError):
    await PostgresModulesRepository(_session_factory(session)).update_module_enrichment(3, RESULT)
  session.commit.assert_not_awaited()


@pytest.mark.anyio
async def test_postgres_get_module_maps_joined_row() -> None:
  module = Module(id=3, subject_id=1, title="Varratok", content="régi", module_number=2, is_published=True)
  result = MagicMock()
  result.first.return_value = (module, "Hegesztéstechnika", "Hegesztő")
  session = AsyncMock()
  session.execute.return_value = result

  record = await PostgresModulesRepository(_session_factory(session)).get_module(3)

  assert record == ModuleRecord(module_id=3, title="Varratok", content="régi", subject_name="Hegesztéstechnika", profession_name="Hegesztő", module_number=2, is_published=True)
