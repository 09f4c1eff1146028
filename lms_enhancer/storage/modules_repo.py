"""Storage interfaces and records for LMS modules."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from lms_enhancer.ai.pipeline.contracts import EnhancementResult

logger = logging.getLogger(__name__)


class UnknownModuleError(LookupError):
  """The module id does not exist in storage."""

  def __init__(self, module_id: int) -> None:
    super().__init__(f"Module {module_id} not found.")
    self.module_id = module_id


@dataclass(frozen=True)
class ModuleRecord:
  """Module row joined with its subject and profession names."""

  module_id: int
  title: str
  content: str
  subject_name: str | None = None
  profession_name: str | None = None
  module_number: int | None = None
  concise_content: str | None = None
  detailed_content: str | None = None
  key_concepts: list[dict[str, Any]] | None = field(default=None, hash=False)
  is_published: bool = False


class ModulesRepository(Protocol):
  """Repository interface for module reads and enrichment writes."""

  async def get_module(self, module_id: int) -> ModuleRecord | None:
    """Return the module with its context, or None when missing."""
    ...

  async def update_module_enrichment(self, module_id: int, result: EnhancementResult) -> None:
    """Overwrite the module's content fields with an enhancement result.

    The detailed text becomes the main content and the module is published.
    Raises UnknownModuleError when the module does not exist.
    """
    ...


class InMemoryModulesRepository:
  """Dictionary-backed repository for local development and tests."""

  def __init__(self, modules: list[ModuleRecord] | None = None) -> None:
    self._modules: dict[int, ModuleRecord] = {module.module_id: module for module in modules or []}

  def add(self, module: ModuleRecord) -> None:
    self._modules[module.module_id] = module

  async def get_module(self, module_id: int) -> ModuleRecord | None:
    return self._modules.get(module_id)

  async def update_module_enrichment(self, module_id: int, result: EnhancementResult) -> None:
    module = self._modules.get(module_id)
    if module is None:
      raise UnknownModuleError(module_id)

    self._modules[module_id] = dataclasses.replace(
      module,
      content=result.detailed_content,
      concise_content=result.concise_content,
      detailed_content=result.detailed_content,
      key_concepts=result.key_concepts_payload(),
      is_published=True,
    )
    logger.info("Stored enrichment for module %s in memory", module_id)
