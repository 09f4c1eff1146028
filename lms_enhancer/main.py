from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from lms_enhancer.api.routes import enhancement
from lms_enhancer.config import get_settings
from lms_enhancer.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from lms_enhancer.core.lifespan import lifespan
from lms_enhancer.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="LMS module enhancer", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["x-request-id"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(enhancement.router, prefix="/admin", tags=["enhancement"])
