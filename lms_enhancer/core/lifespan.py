import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lms_enhancer.ai.pipeline.factory import build_pipeline
from lms_enhancer.config import get_settings
from lms_enhancer.core.database import dispose_engine
from lms_enhancer.core.logging import initialize_logging
from lms_enhancer.jobs.queue import TaskQueue
from lms_enhancer.storage.factory import build_modules_repo


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Wire storage, the pipeline and the enhancement worker for the app's lifetime."""
  settings = get_settings()
  logger = logging.getLogger("lms_enhancer.core.lifespan")

  initialize_logging(settings)
  logger.info("Starting module enhancement service (environment=%s)", settings.environment)

  repository = build_modules_repo(settings)
  resources = build_pipeline(settings)
  task_queue = TaskQueue(
    resources.pipeline,
    repository,
    max_queue_size=settings.max_queue_size,
    seconds_per_module=settings.seconds_per_module,
    recent_history_size=settings.recent_history_size,
  )
  task_queue.start()

  app.state.modules_repo = repository
  app.state.task_queue = task_queue
  app.state.pipeline_resources = resources

  try:
    yield
  finally:
    await task_queue.stop()
    await resources.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")
