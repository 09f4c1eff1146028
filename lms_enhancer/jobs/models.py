"""Domain models for queued module enhancement tasks."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from lms_enhancer.utils.ids import generate_task_id

if TYPE_CHECKING:
  from lms_enhancer.ai.pipeline.contracts import EnhancementResult

TaskStatus = Literal["queued", "running", "succeeded", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed"})


def utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


@dataclass
class EnhancementTask:
  """One module waiting for, or going through, the enhancement pipeline.

  Inputs are captured at enqueue time; only the worker mutates the status fields.
  """

  task_id: str
  module_id: int
  title: str
  raw_content: str
  subject_context: str | None = None
  profession_context: str | None = None
  module_number: int | None = None
  custom_system_message: str | None = None
  status: TaskStatus = "queued"
  queued_at: datetime.datetime = field(default_factory=utc_now)
  started_at: datetime.datetime | None = None
  finished_at: datetime.datetime | None = None
  result: EnhancementResult | None = None
  error: str | None = None

  @classmethod
  def create(cls, module_id: int, title: str, raw_content: str, *, subject_context: str | None = None, profession_context: str | None = None, module_number: int | None = None, custom_system_message: str | None = None) -> EnhancementTask:
    """Build a queued task with a fresh task id."""
    return cls(
      task_id=generate_task_id(module_id),
      module_id=module_id,
      title=title,
      raw_content=raw_content,
      subject_context=subject_context,
      profession_context=profession_context,
      module_number=module_number,
      custom_system_message=custom_system_message,
    )

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class QueuedItem:
  module_id: int
  task_id: str
  title: str
  position: int


@dataclass(frozen=True)
class FinishedTask:
  """Summary of a terminal task kept for the status view."""

  task_id: str
  module_id: int
  title: str
  status: TaskStatus
  error: str | None
  finished_at: datetime.datetime
  duration_seconds: float | None


@dataclass(frozen=True)
class QueueSnapshot:
  """Point-in-time view of the queue."""

  running_task_id: str | None
  running_module_id: int | None
  queued_count: int
  queue: list[QueuedItem]
  recent: list[FinishedTask]
  max_queue_size: int
  seconds_per_module: int

  @property
  def can_add_more(self) -> bool:
    return self.queued_count < self.max_queue_size

  @property
  def estimated_seconds_remaining(self) -> int:
    return self.queued_count * self.seconds_per_module

