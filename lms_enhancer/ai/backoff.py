"""Retry logic with per-service backoff schedules and call deadlines."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from lms_enhancer.ai.errors import TimeoutExternalError, TransientExternalError, classify_external_error

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
  """Delays between attempts plus the deadline of a single attempt.

  The number of attempts is ``len(delays) + 1``.
  """

  delays: tuple[float, ...]
  timeout: float

  @property
  def max_attempts(self) -> int:
    return len(self.delays) + 1


async def _attempt(func: Callable[..., Awaitable[T]], timeout: float, label: str, *args, **kwargs) -> T:
  try:
    async with asyncio.timeout(timeout):
      return await func(*args, **kwargs)
  except TimeoutError as exc:
    raise TimeoutExternalError(f"{label} timed out after {timeout}s") from exc


async def retry_with_backoff(
  func: Callable[..., Awaitable[T]],
  *args,
  policy: RetryPolicy,
  label: str,
  sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  **kwargs,
) -> T:
  """
  Execute an async call, retrying transient failures (rate limits, quota, timeouts).

  Non-transient errors are raised immediately. When every attempt fails the last
  transient error is re-raised for the caller to reclassify. ``sleep`` waits out
  each delay.
  """
  attempts = policy.max_attempts

  for attempt, delay in enumerate(policy.delays, start=1):
    try:
      result = await _attempt(func, policy.timeout, label, *args, **kwargs)
    except Exception as exc:
      error = classify_external_error(exc, service=label)
      if not isinstance(error, TransientExternalError):
        if error is exc:
          raise
        raise error from exc
      logger.warning("%s attempt %d/%d failed: %s. Retrying in %ss...", label, attempt, attempts, error, delay)
      await sleep(delay)
    else:
      if attempt > 1:
        logger.info("%s succeeded on attempt %d/%d", label, attempt, attempts)
      return result

  # Final attempt
  try:
    result = await _attempt(func, policy.timeout, label, *args, **kwargs)
  except Exception as exc:
    error = classify_external_error(exc, service=label)
    logger.warning("%s final attempt %d/%d failed: %s", label, attempts, attempts, error)
    if error is exc:
      raise
    raise error from exc
  if attempts > 1:
    logger.info("%s succeeded on attempt %d/%d", label, attempts, attempts)
  return result
