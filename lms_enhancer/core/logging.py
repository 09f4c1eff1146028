import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path
from types import TracebackType

from lms_enhancer.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
TRACEBACK_TAIL_LINES = 5

_LOG_FILE_PATH: Path | None = None
_LOGGING_INITIALIZED = False


class TruncatedFormatter(logging.Formatter):
  """Formatter that keeps the first line and the tail of a traceback."""

  # ruff: noqa: N802
  def formatException(self, ei: tuple[type[BaseException] | None, BaseException | None, TracebackType | None]) -> str:
    lines = traceback.format_exception(*ei)
    if len(lines) > TRACEBACK_TAIL_LINES + 1:
      return "".join(lines[:1] + ["    ...\n"] + lines[-TRACEBACK_TAIL_LINES:])
    return "".join(lines)


def _rotated_name(default_name: str) -> str:
  """Name backups ``service.log-1`` instead of ``service.log.1``."""
  base, _, suffix = default_name.rpartition(".")
  if suffix.isdigit() and base:
    return f"{base}-{suffix}"
  return default_name


def _build_handlers(settings: Settings) -> tuple[logging.Handler, logging.Handler, Path]:
  """Create stdout and rotating file handlers under the repository's logs directory."""
  log_dir = Path(__file__).resolve().parents[2] / "logs"
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Failed to create log directory at {log_dir}: {exc}") from exc

  log_path = log_dir / f"lms_enhancer_{time.strftime('%Y%m%d_%H%M%S')}.log"

  stream = logging.StreamHandler(sys.stdout)
  stream.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))

  file_handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  file_handler.namer = _rotated_name
  file_handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return stream, file_handler, log_path


def setup_logging(settings: Settings) -> Path:
  """Route root, uvicorn and fastapi loggers through the service handlers."""
  stream_handler, file_handler, log_path = _build_handlers(settings)
  level = logging.DEBUG if settings.debug else logging.INFO
  for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
    log = logging.getLogger(logger_name)
    log.handlers = [stream_handler, file_handler]
    log.propagate = False

  logging.basicConfig(level=level, handlers=[stream_handler, file_handler], force=True)
  # Third-party HTTP clients are noisy at debug level.
  for noisy in ("httpx", "httpcore", "google_genai"):
    logging.getLogger(noisy).setLevel(logging.WARNING)
  return log_path


def initialize_logging(settings: Settings) -> None:
  """Initialize logging once per process."""
  global _LOG_FILE_PATH, _LOGGING_INITIALIZED
  if _LOGGING_INITIALIZED:
    return
  _LOG_FILE_PATH = setup_logging(settings)
  _LOGGING_INITIALIZED = True
  logging.getLogger(__name__).info("Logging initialized. Writing to %s", _LOG_FILE_PATH)
