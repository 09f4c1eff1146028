"""Identifier utilities."""

from __future__ import annotations

import time
import uuid


def generate_task_id(module_id: int) -> str:
  """Return a task id that embeds the module id and the enqueue time in epoch ms."""
  return f"ai-regen-{module_id}-{int(time.time() * 1000)}"


def generate_request_id() -> str:
  """Return a new request identifier."""
  return str(uuid.uuid4())
