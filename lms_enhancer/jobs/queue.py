"""In-process FIFO queue with a single enhancement worker."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections import deque
from typing import Protocol

from lms_enhancer.ai.errors import DuplicateTaskError, FatalStageError, QueueFullError, summarize_error
from lms_enhancer.ai.pipeline.contracts import EnhancementResult
from lms_enhancer.jobs.models import EnhancementTask, FinishedTask, QueuedItem, QueueSnapshot, TaskStatus, utc_now
from lms_enhancer.storage.modules_repo import ModulesRepository

logger = logging.getLogger(__name__)


class TaskRunner(Protocol):
  """Anything that can turn a task into a result (the enhancement pipeline)."""

  async def run(self, task: EnhancementTask) -> EnhancementResult:
    """Process one task."""
    ...


class TaskQueue:
  """Queue of enhancement tasks processed one at a time.

  ``enqueue`` and ``status`` may be called from any thread; the worker runs on the event
  loop that called ``start``. All shared state sits behind one lock that is never held
  across an ``await``.
  """

  def __init__(self, runner: TaskRunner, repository: ModulesRepository, *, max_queue_size: int = 50, seconds_per_module: int = 45, recent_history_size: int = 20) -> None:
    self._runner = runner
    self._repository = repository
    self._max_queue_size = max_queue_size
    self._seconds_per_module = seconds_per_module
    self._lock = threading.Lock()
    self._pending: deque[EnhancementTask] = deque()
    self._running: EnhancementTask | None = None
    self._recent: deque[FinishedTask] = deque(maxlen=recent_history_size)
    self._loop: asyncio.AbstractEventLoop | None = None
    self._wakeup: asyncio.Event | None = None
    self._idle: asyncio.Event | None = None
    self._worker: asyncio.Task[None] | None = None

  @property
  def is_running(self) -> bool:
    return self._worker is not None and not self._worker.done()

  def enqueue(self, task: EnhancementTask) -> int:
    """Append a task and return its 1-based position among the waiting tasks.

    Raises DuplicateTaskError when the module is already queued or running and
    QueueFullError when the waiting list is at capacity.
    """
    with self._lock:
      running = self._running
      if (running is not None and running.module_id == task.module_id) or any(item.module_id == task.module_id for item in self._pending):
        raise DuplicateTaskError(task.module_id)
      if len(self._pending) >= self._max_queue_size:
        raise QueueFullError(self._max_queue_size)

      task.status = "queued"
      self._pending.append(task)
      position = len(self._pending)

    logger.info("Queued task %s for module %s at position %d", task.task_id, task.module_id, position)
    self._notify()
    return position

  def status(self) -> QueueSnapshot:
    """Return a snapshot of the queue without waiting on the running task."""
    with self._lock:
      running = self._running
      queue = [QueuedItem(module_id=item.module_id, task_id=item.task_id, title=item.title, position=index) for index, item in enumerate(self._pending, start=1)]
      recent = list(reversed(self._recent))

    return QueueSnapshot(
      running_task_id=running.task_id if running else None,
      running_module_id=running.module_id if running else None,
      queued_count=len(queue),
      queue=queue,
      recent=recent,
      max_queue_size=self._max_queue_size,
      seconds_per_module=self._seconds_per_module,
    )

  def start(self) -> None:
    """Start the worker on the running event loop."""
    if self.is_running:
      return

    self._loop = asyncio.get_running_loop()
    self._wakeup = asyncio.Event()
    self._idle = asyncio.Event()
    with self._lock:
      has_pending = bool(self._pending)
    if has_pending:
      self._wakeup.set()
    else:
      self._idle.set()

    self._worker = self._loop.create_task(self._run_worker(self._wakeup, self._idle), name="enhancement-worker")
    logger.info("Enhancement worker started (max queue size %d)", self._max_queue_size)

  async def stop(self) -> None:
    """Cancel the worker and drop tasks that are still waiting."""
    worker = self._worker
    self._worker = None
    if worker is not None:
      worker.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await worker

    with self._lock:
      dropped = list(self._pending)
      self._pending.clear()
    if dropped:
      logger.warning("Enhancement worker stopped; dropping %d queued tasks for modules %s", len(dropped), [task.module_id for task in dropped])
    else:
      logger.info("Enhancement worker stopped")

  async def wait_until_idle(self) -> None:
    """Wait until no task is queued or running."""
    if self._idle is None:
      raise RuntimeError("TaskQueue.start() has not been called.")
    await self._idle.wait()

  def _notify(self) -> None:
    loop = self._loop
    if loop is None or loop.is_closed():
      return

    try:
      current = asyncio.get_running_loop()
    except RuntimeError:
      current = None

    if current is loop:
      self._on_enqueued()
    else:
      loop.call_soon_threadsafe(self._on_enqueued)

  def _on_enqueued(self) -> None:
    if self._idle is not None:
      self._idle.clear()
    if self._wakeup is not None:
      self._wakeup.set()

  def _take_next(self) -> EnhancementTask | None:
    with self._lock:
      if not self._pending:
        return None
      task = self._pending.popleft()
      task.status = "running"
      task.started_at = utc_now()
      self._running = task
      return task

  def _finish(self, task: EnhancementTask, status: TaskStatus, error: str | None) -> None:
    finished_at = utc_now()
    duration = (finished_at - task.started_at).total_seconds() if task.started_at else None
    with self._lock:
      task.status = status
      task.error = error
      task.finished_at = finished_at
      self._running = None
      self._recent.append(FinishedTask(task_id=task.task_id, module_id=task.module_id, title=task.title, status=status, error=error, finished_at=finished_at, duration_seconds=duration))

  async def _run_worker(self, wakeup: asyncio.Event, idle: asyncio.Event) -> None:
    while True:
      task = self._take_next()
      if task is None:
        wakeup.clear()
        # Re-check after clearing so an enqueue between the two calls is not missed.
        task = self._take_next()
        if task is None:
          idle.set()
          await wakeup.wait()
          continue

      await self._process(task)

  async def _process(self, task: EnhancementTask) -> None:
    logger.info("Processing task %s for module %s", task.task_id, task.module_id)
    try:
      result = await self._runner.run(task)
      await self._repository.update_module_enrichment(task.module_id, result)
    except asyncio.CancelledError:
      self._finish(task, "failed", "Cancelled before completion.")
      logger.warning("Task %s for module %s cancelled; nothing was persisted", task.task_id, task.module_id)
      raise
    except FatalStageError as exc:
      self._finish(task, "failed", summarize_error(exc))
      logger.error("Task %s for module %s failed: %s", task.task_id, task.module_id, exc)
    except Exception as exc:  # noqa: BLE001
      self._finish(task, "failed", summarize_error(exc))
      logger.error("Task %s for module %s failed unexpectedly", task.task_id, task.module_id, exc_info=True)
    else:
      task.result = result
      self._finish(task, "succeeded", None)
      logger.info("Task %s for module %s succeeded", task.task_id, task.module_id)
