from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

from lms_enhancer.jobs.models import QueueSnapshot, TaskStatus


class _ApiModel(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnhanceModuleRequest(_ApiModel):
  """Optional overrides for a module enhancement; missing fields are read from storage."""

  title: StrictStr | None = Field(default=None, min_length=1, description="Module title.")
  content: StrictStr | None = Field(default=None, description="Raw module content to enhance.")
  subject_name: StrictStr | None = Field(default=None, description="Subject the module belongs to.")
  profession_name: StrictStr | None = Field(default=None, description="Profession the subject belongs to.")
  module_number: int | None = Field(default=None, ge=1, description="Position of the module within its subject.")
  custom_system_message: StrictStr | None = Field(default=None, max_length=2000, description="Replaces the default system instruction.")
  model_config = ConfigDict(extra="forbid")


class EnqueueResponse(_ApiModel):
  """Accepted enhancement task."""

  task_id: str
  module_id: int
  position: int


class QueuedItemResponse(_ApiModel):
  module_id: int
  task_id: str
  title: str
  position: int


class FinishedTaskResponse(_ApiModel):
  task_id: str
  module_id: int
  title: str
  status: TaskStatus
  error: str | None = None
  finished_at: datetime.datetime
  duration_seconds: float | None = None


class QueueStatusResponse(_ApiModel):
  """Queue state for the admin dashboard."""

  running_task_id: str | None = None
  running_module_id: int | None = None
  queued_count: int
  queue: list[QueuedItemResponse]
  recent: list[FinishedTaskResponse]
  max_queue_size: int
  can_add_more: bool
  estimated_seconds_remaining: int

  @classmethod
  def from_snapshot(cls, snapshot: QueueSnapshot) -> QueueStatusResponse:
    return cls(
      running_task_id=snapshot.running_task_id,
      running_module_id=snapshot.running_module_id,
      queued_count=snapshot.queued_count,
      queue=[QueuedItemResponse(module_id=item.module_id, task_id=item.task_id, title=item.title, position=item.position) for item in snapshot.queue],
      recent=[
        FinishedTaskResponse(
          task_id=item.task_id,
          module_id=item.module_id,
          title=item.title,
          status=item.status,
          error=item.error,
          finished_at=item.finished_at,
          duration_seconds=item.duration_seconds,
        )
        for item in snapshot.recent
      ],
      max_queue_size=snapshot.max_queue_size,
      can_add_more=snapshot.can_add_more,
      estimated_seconds_remaining=snapshot.estimated_seconds_remaining,
    )
