"""Postgres-backed repository for module reads and enrichment writes using SQLAlchemy."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lms_enhancer.ai.pipeline.contracts import EnhancementResult
from lms_enhancer.core.database import get_session_factory
from lms_enhancer.schema.modules import Module, Profession, Subject
from lms_enhancer.storage.modules_repo import ModuleRecord, UnknownModuleError

logger = logging.getLogger(__name__)


class PostgresModulesRepository:
  """Read modules with their subject and profession, and persist enrichment results."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_module(self, module_id: int) -> ModuleRecord | None:
    async with self._session_factory() as session:
      stmt = (
        select(Module, Subject.name, Profession.name)
        .join(Subject, Module.subject_id == Subject.id, isouter=True)
        .join(Profession, Subject.profession_id == Profession.id, isouter=True)
        .where(Module.id == module_id)
      )
      row = (await session.execute(stmt)).first()
      if row is None:
        return None

      module, subject_name, profession_name = row
      return ModuleRecord(
        module_id=module.id,
        title=module.title,
        content=module.content,
        subject_name=subject_name,
        profession_name=profession_name,
        module_number=module.module_number,
        concise_content=module.concise_content,
        detailed_content=module.detailed_content,
        key_concepts=module.key_concepts_data,
        is_published=bool(module.is_published),
      )

  async def update_module_enrichment(self, module_id: int, result: EnhancementResult) -> None:
    async with self._session_factory() as session:
      module = await session.get(Module, module_id)
      if module is None:
        raise UnknownModuleError(module_id)

      module.content = result.detailed_content
      module.concise_content = result.concise_content
      module.detailed_content = result.detailed_content
      module.key_concepts_data = result.key_concepts_payload()
      module.is_published = True
      module.updated_at = func.now()
      await session.commit()

    logger.info("Stored enrichment for module %s (%d key concepts)", module_id, len(result.key_concepts))
