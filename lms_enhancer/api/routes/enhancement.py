import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status

from lms_enhancer.ai.errors import DuplicateTaskError, QueueFullError
from lms_enhancer.api.deps import get_modules_repo, get_task_queue
from lms_enhancer.api.models import EnhanceModuleRequest, EnqueueResponse, QueueStatusResponse
from lms_enhancer.jobs.models import EnhancementTask
from lms_enhancer.jobs.queue import TaskQueue
from lms_enhancer.storage.modules_repo import ModulesRepository

router = APIRouter()
logger = logging.getLogger("lms_enhancer.api.routes.enhancement")


@router.post("/modules/{module_id}/enhance", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED, response_model_by_alias=True)
async def enhance_module(  # noqa: B008
  module_id: int,
  payload: EnhanceModuleRequest | None = Body(default=None),  # noqa: B008
  task_queue: TaskQueue = Depends(get_task_queue),  # noqa: B008
  repository: ModulesRepository = Depends(get_modules_repo),  # noqa: B008
) -> EnqueueResponse:
  """Queue a module for AI enhancement."""
  payload = payload or EnhanceModuleRequest()
  title = payload.title
  content = payload.content
  subject_name = payload.subject_name
  profession_name = payload.profession_name
  module_number = payload.module_number

  if title is None or content is None or subject_name is None or profession_name is None or module_number is None:
    record = await repository.get_module(module_id)
    if record is None:
      if title is None or content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Module {module_id} not found.")
    else:
      title = title if title is not None else record.title
      content = content if content is not None else record.content
      subject_name = subject_name if subject_name is not None else record.subject_name
      profession_name = profession_name if profession_name is not None else record.profession_name
      module_number = module_number if module_number is not None else record.module_number

  task = EnhancementTask.create(
    module_id,
    title,
    content,
    subject_context=subject_name,
    profession_context=profession_name,
    module_number=module_number,
    custom_system_message=payload.custom_system_message,
  )
  try:
    position = task_queue.enqueue(task)
  except DuplicateTaskError as exc:
    logger.info("Enhancement request for module %s rejected: already queued or running", module_id)
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except QueueFullError as exc:
    logger.warning("Enhancement request for module %s rejected: queue is full", module_id)
    raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc)) from exc

  logger.info("Queued task %s for module %s at position %d", task.task_id, module_id, position)
  return EnqueueResponse(task_id=task.task_id, module_id=module_id, position=position)


@router.get("/ai-queue-status", response_model=QueueStatusResponse, response_model_by_alias=True)
async def queue_status(task_queue: TaskQueue = Depends(get_task_queue)) -> QueueStatusResponse:  # noqa: B008
  """Return the running task, waiting tasks and recent outcomes."""
  return QueueStatusResponse.from_snapshot(task_queue.status())
