import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.ai.errors import ProviderError
from app.config import get_settings
from app.core.middleware import REQUEST_ID_HEADER
from app.services.curriculum import CurriculumItemNotFoundError
from app.services.quotas import INSUFFICIENT_QUOTA_MESSAGE, QuotaExceededError

logger = logging.getLogger("uvicorn.error")


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build an error payload that carries the request id for log correlation."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  # Starlette sends this response from outside the request-id middleware, so the header is set here.
  headers = {REQUEST_ID_HEADER: request_id} if request_id else None
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id), headers=headers)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions while keeping 5xx details out of responses."""
  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def quota_exceeded_exception_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
  """Reject the request with 402; quota errors are never retried."""
  request_id = _request_id(request)
  logger.info("Quota exceeded request_id=%s path=%s used=%s limit=%s cost=%s", request_id, request.url.path, exc.used, exc.limit, exc.cost)
  return JSONResponse(status_code=status.HTTP_402_PAYMENT_REQUIRED, content=_error_payload(INSUFFICIENT_QUOTA_MESSAGE, request_id=request_id))


async def curriculum_not_found_exception_handler(request: Request, exc: CurriculumItemNotFoundError) -> JSONResponse:
  request_id = _request_id(request)
  return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload(str(exc), request_id=request_id))


async def provider_exception_handler(request: Request, exc: ProviderError) -> JSONResponse:
  """Return a generic failure for generation errors; provider output may contain prompts."""
  request_id = _request_id(request)
  logger.error("Generation failure request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Failed to generate content.", request_id=request_id))
