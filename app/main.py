from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.ai.errors import ProviderError
from app.api.routes import curriculums, homework, lessons, skills, tasks, users
from app.config import get_settings
from app.core.exceptions import (
  curriculum_not_found_exception_handler,
  global_exception_handler,
  http_exception_handler,
  provider_exception_handler,
  quota_exceeded_exception_handler,
  request_validation_exception_handler,
)
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.services.curriculum import CurriculumItemNotFoundError
from app.services.quotas import QuotaExceededError

settings = get_settings()

app = FastAPI(title="AiSchool Engine", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(
  CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "PUT", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"]
)


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(QuotaExceededError, quota_exceeded_exception_handler)
app.add_exception_handler(CurriculumItemNotFoundError, curriculum_not_found_exception_handler)
app.add_exception_handler(ProviderError, provider_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(curriculums.router, prefix="/api", tags=["curriculums"])
app.include_router(lessons.router, prefix="/api", tags=["lessons"])
app.include_router(skills.router, prefix="/api", tags=["skills"])
app.include_router(homework.router, prefix="/api", tags=["homework"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
