"""Shared FastAPI dependencies for the queue and module storage."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from lms_enhancer.jobs.queue import TaskQueue
from lms_enhancer.storage.modules_repo import ModulesRepository


def get_task_queue(request: Request) -> TaskQueue:
  """Return the queue created by the application lifespan."""
  task_queue = getattr(request.app.state, "task_queue", None)
  if task_queue is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Enhancement queue is not running.")
  return task_queue


def get_modules_repo(request: Request) -> ModulesRepository:
  repository = getattr(request.app.state, "modules_repo", None)
  if repository is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Module storage is not configured.")
  return repository
