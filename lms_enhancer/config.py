"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from lms_enhancer.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

GENERATION_MODES: tuple[str, ...] = ("fast", "balanced", "quality")


@dataclass(frozen=True)
class Settings:
  """Typed settings for the module enhancement service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  gemini_api_key: str | None
  gemini_model: str
  tavily_api_key: str | None
  youtube_api_key: str | None
  youtube_base_url: str
  wikipedia_base_url: str
  generation_mode: str
  llm_timeout_seconds: float
  search_timeout_seconds: float
  wikipedia_timeout_seconds: float
  video_timeout_seconds: float
  llm_retry_delays: tuple[float, ...]
  search_retry_delays: tuple[float, ...]
  wikipedia_retry_delays: tuple[float, ...]
  video_retry_delays: tuple[float, ...]
  web_search_max_results: int
  max_queue_size: int
  seconds_per_module: int
  recent_history_size: int
  videos_per_concept: int
  max_key_concepts: int
  youtube_min_interval_seconds: float


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:5173",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("LMS_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("LMS_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _parse_delays(name: str, raw: str | None, default: tuple[float, ...]) -> tuple[float, ...]:
  """Parse a comma separated retry delay schedule in seconds."""

  if not raw:
    return default

  try:
    delays = tuple(float(part) for part in raw.split(",") if part.strip())
  except ValueError as exc:
    raise ValueError(f"{name} must be a comma separated list of seconds.") from exc

  if any(delay < 0 for delay in delays):
    raise ValueError(f"{name} must not contain negative delays.")

  return delays


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LMS_ENV", "development").lower()
  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("LMS_DEBUG"))

  log_max_bytes = _positive_int("LMS_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("LMS_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("LMS_LOG_BACKUP_COUNT must be zero or a positive integer.")

  generation_mode = (os.getenv("LMS_GENERATION_MODE") or "balanced").strip().lower()
  if generation_mode not in GENERATION_MODES:
    raise ValueError(f"LMS_GENERATION_MODE must be one of {', '.join(GENERATION_MODES)}.")

  youtube_min_interval_seconds = float(os.getenv("LMS_YOUTUBE_MIN_INTERVAL_SECONDS", "1.0"))
  if youtube_min_interval_seconds < 0:
    raise ValueError("LMS_YOUTUBE_MIN_INTERVAL_SECONDS must be zero or positive.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("LMS_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("LMS_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("LMS_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("LMS_PG_CONNECT_TIMEOUT", "5"),
    gemini_api_key=_optional_str(os.getenv("LMS_GEMINI_API_KEY")) or _optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_model=(os.getenv("LMS_GEMINI_MODEL") or "gemini-2.5-flash").strip(),
    tavily_api_key=_optional_str(os.getenv("LMS_TAVILY_API_KEY")),
    youtube_api_key=_optional_str(os.getenv("LMS_YOUTUBE_API_KEY")),
    youtube_base_url=(os.getenv("LMS_YOUTUBE_BASE_URL") or "https://www.googleapis.com/youtube/v3").strip().rstrip("/"),
    wikipedia_base_url=(os.getenv("LMS_WIKIPEDIA_BASE_URL") or "https://hu.wikipedia.org").strip().rstrip("/"),
    generation_mode=generation_mode,
    llm_timeout_seconds=_positive_float("LMS_LLM_TIMEOUT_SECONDS", "120"),
    search_timeout_seconds=_positive_float("LMS_SEARCH_TIMEOUT_SECONDS", "20"),
    wikipedia_timeout_seconds=_positive_float("LMS_WIKIPEDIA_TIMEOUT_SECONDS", "10"),
    video_timeout_seconds=_positive_float("LMS_VIDEO_TIMEOUT_SECONDS", "15"),
    # Encyclopedia lookups back off faster than the quota-limited search APIs.
    llm_retry_delays=_parse_delays("LMS_LLM_RETRY_DELAYS", os.getenv("LMS_LLM_RETRY_DELAYS"), (5.0, 20.0, 50.0)),
    search_retry_delays=_parse_delays("LMS_SEARCH_RETRY_DELAYS", os.getenv("LMS_SEARCH_RETRY_DELAYS"), (2.0, 5.0)),
    wikipedia_retry_delays=_parse_delays("LMS_WIKIPEDIA_RETRY_DELAYS", os.getenv("LMS_WIKIPEDIA_RETRY_DELAYS"), (0.5, 1.0)),
    video_retry_delays=_parse_delays("LMS_VIDEO_RETRY_DELAYS", os.getenv("LMS_VIDEO_RETRY_DELAYS"), (2.0, 5.0)),
    web_search_max_results=_positive_int("LMS_WEB_SEARCH_MAX_RESULTS", "10"),
    max_queue_size=_positive_int("LMS_MAX_QUEUE_SIZE", "50"),
    seconds_per_module=_positive_int("LMS_SECONDS_PER_MODULE", "45"),
    recent_history_size=_positive_int("LMS_RECENT_HISTORY_SIZE", "20"),
    videos_per_concept=_positive_int("LMS_VIDEOS_PER_CONCEPT", "2"),
    max_key_concepts=_positive_int("LMS_MAX_KEY_CONCEPTS", "3"),
    youtube_min_interval_seconds=youtube_min_interval_seconds,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load only the settings needed to build the database engine."""

  return DatabaseSettings(
    debug=_parse_bool(os.getenv("LMS_DEBUG")),
    pg_dsn=_optional_str(os.getenv("LMS_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=int(os.getenv("LMS_PG_CONNECT_TIMEOUT", "5")),
  )
