"""Unit tests for the single-worker enhancement queue."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from lms_enhancer.ai.errors import DuplicateTaskError, FatalStageError, QueueFullError
from lms_enhancer.ai.pipeline.contracts import EnhancementResult
from lms_enhancer.jobs.models import EnhancementTask
from lms_enhancer.jobs.queue import TaskQueue


class GatedRunner:
  """Blocks each module until its gate is opened; can fail chosen modules."""

  def __init__(self, *, auto_release: bool = False, fatal: set[int] | None = None) -> None:
    self.auto_release = auto_release
    self.fatal = fatal or set()
    self.gates: dict[int, asyncio.Event] = {}
    self.started: list[int] = []
    self.active = 0
    self.max_active = 0

  def gate(self, module_id: int) -> asyncio.Event:
    return self.gates.setdefault(module_id, asyncio.Event())

  async def run(self, task: EnhancementTask) -> EnhancementResult:
    self.started.append(task.module_id)
    self.active += 1
    self.max_active = max(self.max_active, self.active)
    try:
      if not self.auto_release:
        await self.gate(task.module_id).wait()
      else:
        await asyncio.sleep(0)
      if task.module_id in self.fatal:
        raise FatalStageError("detailed_content", "model unavailable")
      return EnhancementResult(concise_content=f"rövid {task.module_id}", detailed_content=f"részletes tartalom {task.module_id}")
    finally:
      self.active -= 1


def _task(module_id: int) -> EnhancementTask:
  return EnhancementTask.create(module_id, f"Modul {module_id}", "Nyers tartalom")


async def _wait_for(predicate: Callable[[], bool]) -> None:
  for _ in range(1000):
    if predicate():
      return
    await asyncio.sleep(0)
  raise AssertionError("condition not reached")


@pytest.mark.anyio
async def test_tasks_run_in_fifo_order_with_positions() -> None:
  runner = GatedRunner()
  repository = AsyncMock()
  queue = TaskQueue(runner, repository)
  queue.start()
  try:
    positions = [queue.enqueue(_task(module_id)) for module_id in (1, 2, 3)]
    assert positions == [1, 2, 3]

    await _wait_for(lambda: queue.status().running_module_id == 1)
    snapshot = queue.status()
    assert [(item.module_id, item.position) for item in snapshot.queue] == [(2, 1), (3, 2)]

    runner.gate(1).set()
    await _wait_for(lambda: queue.status().running_module_id == 2)
    snapshot = queue.status()
    assert [(item.module_id, item.position) for item in snapshot.queue] == [(3, 1)]
    assert snapshot.recent[0].module_id == 1
    assert snapshot.recent[0].status == "succeeded"

    runner.gate(2).set()
    runner.gate(3).set()
    async with asyncio.timeout(5):
      await queue.wait_until_idle()
  finally:
    await queue.stop()

  assert runner.started == [1, 2, 3]
  assert runner.max_active == 1
  assert [call.args[0] for call in repository.update_module_enrichment.await_args_list] == [1, 2, 3]


@pytest.mark.anyio
async def test_duplicate_enqueue_is_rejected_and_leaves_queue_unchanged() -> None:
  queue = TaskQueue(GatedRunner(), AsyncMock())
  queue.enqueue(_task(1))
  queue.enqueue(_task(2))
  before = queue.status()

  with pytest.raises(DuplicateTaskError):
    queue.enqueue(_task(2))

  after = queue.status()
  assert [item.task_id for item in after.queue] == [item.task_id for item in before.queue]


@pytest.mark.anyio
async def test_duplicate_of_running_module_is_rejected() -> None:
  runner = GatedRunner()
  queue = TaskQueue(runner, AsyncMock())
  queue.start()
  try:
    queue.enqueue(_task(1))
    await _wait_for(lambda: queue.status().running_module_id == 1)
    with pytest.raises(DuplicateTaskError):
      queue.enqueue(_task(1))
    assert queue.status().queued_count == 0
  finally:
    await queue.stop()


@pytest.mark.anyio
async def test_full_queue_rejects_new_tasks() -> None:
  queue = TaskQueue(GatedRunner(), AsyncMock(), max_queue_size=2, seconds_per_module=45)
  queue.enqueue(_task(1))
  queue.enqueue(_task(2))

  with pytest.raises(QueueFullError):
    queue.enqueue(_task(3))

  snapshot = queue.status()
  assert snapshot.can_add_more is False
  assert snapshot.estimated_seconds_remaining == 90


@pytest.mark.anyio
async def test_fatal_failure_skips_storage_and_worker_continues() -> None:
  runner = GatedRunner(auto_release=True, fatal={1})
  repository = AsyncMock()
  queue = TaskQueue(runner, repository)
  first, second = _task(1), _task(2)
  queue.enqueue(first)
  queue.enqueue(second)
  queue.start()
  try:
    async with asyncio.timeout(5):
      await queue.wait_until_idle()
  finally:
    await queue.stop()

  assert first.status == "failed"
  assert "detailed_content" in (first.error or "")
  assert first.result is None
  assert second.status == "succeeded"
  assert second.result is not None
  repository.update_module_enrichment.assert_awaited_once()
  assert repository.update_module_enrichment.await_args.args[0] == 2
  assert [(item.module_id, item.status) for item in queue.status().recent] == [(2, "succeeded"), (1, "failed")]


@pytest.mark.anyio
async def test_storage_failure_marks_task_failed() -> None:
  repository = AsyncMock()
  repository.update_module_enrichment.side_effect = RuntimeError("connection reset")
  queue = TaskQueue(GatedRunner(auto_release=True), repository)
  task = _task(5)
  queue.enqueue(task)
  queue.start()
  try:
    async with asyncio.timeout(5):
      await queue.wait_until_idle()
  finally:
    await queue.stop()

  assert task.status == "failed"
  assert task.error == "RuntimeError: connection reset"


@pytest.mark.anyio
async def test_stop_cancels_running_task_and_drops_waiting_ones() -> None:
  runner = GatedRunner()
  repository = AsyncMock()
  queue = TaskQueue(runner, repository)
  queue.start()
  running, waiting = _task(1), _task(2)
  queue.enqueue(running)
  queue.enqueue(waiting)
  await _wait_for(lambda: queue.status().running_module_id == 1)

  await queue.stop()

  assert running.status == "failed"
  assert queue.status().queued_count == 0
  assert queue.status().running_module_id is None
  repository.update_module_enrichment.assert_not_awaited()
  assert not queue.is_running


@pytest.mark.anyio
async def test_enqueue_from_worker_threads_processes_every_task_one_at_a_time() -> None:
  runner = GatedRunner(auto_release=True)
  repository = AsyncMock()
  queue = TaskQueue(runner, repository, max_queue_size=100)
  queue.start()

  def submit(first_module_id: int) -> list[int]:
    positions = [queue.enqueue(_task(module_id)) for module_id in range(first_module_id, first_module_id + 20)]
    queue.status()
    return positions

  try:
    results = await asyncio.gather(*(asyncio.to_thread(submit, start) for start in (100, 200, 300)))
    await asyncio.wait_for(queue.wait_until_idle(), timeout=5)
  finally:
    await queue.stop()

  assert all(position >= 1 for positions in results for position in positions)
  expected = {module_id for start in (100, 200, 300) for module_id in range(start, start + 20)}
  assert sorted(runner.started) == sorted(expected)
  assert runner.max_active == 1
  assert {call.args[0] for call in repository.update_module_enrichment.await_args_list} == expected
  assert repository.update_module_enrichment.await_count == 60

def test_task_ids_follow_the_regeneration_format() -> None:
  task = _task(42)
  prefix, module_id, timestamp = task.task_id.rsplit("-", 2)
  assert prefix == "ai-regen"
  assert module_id == "42"
  assert timestamp.isdigit()
  assert task.status == "queued"
  assert not task.is_terminal
