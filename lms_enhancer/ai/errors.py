"""Error taxonomy and classification helpers for external service handling."""

from __future__ import annotations

from typing import Iterable


class EnhancementError(Exception):
  """Base class for enhancement failures."""


class FatalStageError(EnhancementError):
  """Raised when a stage failure must abort the whole task."""

  def __init__(self, stage: str, message: str) -> None:
    super().__init__(f"{stage}: {message}")
    self.stage = stage


class DegradedStageError(EnhancementError):
  """Raised inside an optional stage; the pipeline substitutes a fallback."""

  def __init__(self, stage: str, message: str) -> None:
    super().__init__(f"{stage}: {message}")
    self.stage = stage


class TransientExternalError(EnhancementError):
  """External failure worth retrying."""


class RateLimitedError(TransientExternalError):
  """The external service answered with a rate limit (HTTP 429)."""


class QuotaExceededError(TransientExternalError):
  """The daily or per-project quota of the external service is exhausted."""


class TimeoutExternalError(TransientExternalError):
  """The external call did not finish within its deadline."""


class ExternalServiceError(EnhancementError):
  """Non-retryable external failure."""


class InvalidResponseError(ExternalServiceError):
  """The external service answered with an unusable payload."""


class NoResultsError(ExternalServiceError):
  """The external service returned no results."""


class DuplicateTaskError(EnhancementError):
  """The module already has a queued or running task."""

  def __init__(self, module_id: int) -> None:
    super().__init__(f"Module {module_id} is already queued or being processed.")
    self.module_id = module_id


class QueueFullError(EnhancementError):
  """The queue already holds the maximum number of waiting tasks."""

  def __init__(self, limit: int) -> None:
    super().__init__(f"Enhancement queue is full ({limit} waiting tasks).")
    self.limit = limit


_RATE_LIMIT_HINTS: tuple[str, ...] = (
  "429",
  "too many requests",
  "rate limit",
  "resource exhausted",
  "resource_exhausted",
)

_QUOTA_HINTS: tuple[str, ...] = (
  "quota exceeded",
  "quotaexceeded",
  "daily limit",
  "dailylimitexceeded",
)

_TIMEOUT_HINTS: tuple[str, ...] = (
  "timeout",
  "timed out",
  "deadline exceeded",
)


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  for hint in hints:
    if hint in message:
      return True
  return False


def is_rate_limit_message(message: str) -> bool:
  return _match_hint(message.lower(), _RATE_LIMIT_HINTS)


def is_quota_message(message: str) -> bool:
  return _match_hint(message.lower(), _QUOTA_HINTS)


def is_timeout_message(message: str) -> bool:
  return _match_hint(message.lower(), _TIMEOUT_HINTS)


def classify_external_error(exc: Exception, *, service: str) -> EnhancementError:
  """Map a raw SDK exception onto the taxonomy using its message."""
  if isinstance(exc, EnhancementError):
    return exc

  raw = str(exc)
  message = f"{service}: {raw}"
  # Quota hints first; quota messages often mention the rate limit as well.
  if is_quota_message(raw):
    return QuotaExceededError(message)
  if is_rate_limit_message(raw):
    return RateLimitedError(message)
  if is_timeout_message(raw) or isinstance(exc, TimeoutError):
    return TimeoutExternalError(message)
  return ExternalServiceError(message)


def summarize_error(exc: BaseException, limit: int = 300) -> str:
  """Return a short single-line error summary for task status reporting."""
  text = " ".join(str(exc).split()) or type(exc).__name__
  summary = f"{type(exc).__name__}: {text}"
  if len(summary) > limit:
    return summary[: limit - 3] + "..."
  return summary
