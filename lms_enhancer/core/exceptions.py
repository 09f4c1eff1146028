import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lms_enhancer.config import get_settings

logger = logging.getLogger("uvicorn.error")


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build an error payload that carries a request id for log correlation."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: Any) -> list[dict[str, Any]]:
  """Return validation errors without the raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    ctx = scrubbed.get("ctx")
    if isinstance(ctx, dict):
      # Exception objects in ctx are not JSON serializable.
      scrubbed["ctx"] = {key: (f"{type(value).__name__}: {value}" if isinstance(value, BaseException) else value) for key, value in ctx.items() if key != "input"}
    sanitized.append(jsonable_encoder(scrubbed))
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch unhandled errors without leaking internals."""
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without the request payload."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Pass 4xx details to clients; hide 5xx details."""
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))
