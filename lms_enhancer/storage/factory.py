"""Factory helpers for repository selection."""

from __future__ import annotations

import logging

from lms_enhancer.config import Settings
from lms_enhancer.storage.modules_repo import InMemoryModulesRepository, ModulesRepository
from lms_enhancer.storage.postgres_modules_repo import PostgresModulesRepository

logger = logging.getLogger(__name__)


def build_modules_repo(settings: Settings) -> ModulesRepository:
  """Return the Postgres repository when a DSN is configured, else an in-memory one."""
  if settings.pg_dsn:
    return PostgresModulesRepository()

  if settings.environment in {"production", "prod"}:
    raise RuntimeError("LMS_PG_DSN must be set in production.")

  logger.warning("LMS_PG_DSN is not set; module storage is in memory and not shared with the LMS.")
  return InMemoryModulesRepository()
