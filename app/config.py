"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_CACHE_BACKENDS = {"redis", "memory", "none"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the AiSchool service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  redis_url: str | None
  redis_timeout_seconds: float
  cache_backend: str
  lesson_cache_ttl_seconds: int
  warm_cache_ttl_seconds: int
  warmer_top_n: int
  warmer_enabled: bool
  warmer_run_hour_utc: int
  warmer_reset_counts: bool
  default_quota_limit: int
  cost_lesson: int
  cost_questions: int
  cost_diagnostic: int
  cost_homework: int
  worker_concurrency: int
  job_visibility_timeout_seconds: int
  max_homework_image_bytes: int
  gemini_api_key: str | None
  content_model: str
  quiz_model: str
  task_secret: str | None
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("AISCHOOL_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("AISCHOOL_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("AISCHOOL_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


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


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("AISCHOOL_ENV", "development").lower()
  debug = _parse_bool(os.getenv("AISCHOOL_DEBUG"))

  log_max_bytes = _positive_int("AISCHOOL_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("AISCHOOL_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("AISCHOOL_LOG_BACKUP_COUNT must be zero or a positive integer.")

  cache_backend = (os.getenv("AISCHOOL_CACHE_BACKEND") or "redis").strip().lower()
  if cache_backend not in _CACHE_BACKENDS:
    raise ValueError(f"AISCHOOL_CACHE_BACKEND must be one of {sorted(_CACHE_BACKENDS)}.")

  warmer_run_hour_utc = int(os.getenv("AISCHOOL_WARMER_RUN_HOUR_UTC", "0"))
  if not 0 <= warmer_run_hour_utc <= 23:
    raise ValueError("AISCHOOL_WARMER_RUN_HOUR_UTC must be between 0 and 23.")

  default_quota_limit = int(os.getenv("AISCHOOL_DEFAULT_QUOTA_LIMIT", "1000"))
  if default_quota_limit < 0:
    raise ValueError("AISCHOOL_DEFAULT_QUOTA_LIMIT must be zero or a positive integer.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("AISCHOOL_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("AISCHOOL_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("AISCHOOL_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    redis_url=_optional_str(os.getenv("AISCHOOL_REDIS_URL")) or _optional_str(os.getenv("REDIS_URL")),
    redis_timeout_seconds=_positive_float("AISCHOOL_REDIS_TIMEOUT_SECONDS", "1.0"),
    cache_backend=cache_backend,
    lesson_cache_ttl_seconds=_positive_int("AISCHOOL_LESSON_CACHE_TTL_SECONDS", "3600"),
    warm_cache_ttl_seconds=_positive_int("AISCHOOL_WARM_CACHE_TTL_SECONDS", "86400"),
    warmer_top_n=_positive_int("AISCHOOL_WARMER_TOP_N", "10"),
    warmer_enabled=_parse_bool(os.getenv("AISCHOOL_WARMER_ENABLED")),
    warmer_run_hour_utc=warmer_run_hour_utc,
    warmer_reset_counts=_parse_bool(os.getenv("AISCHOOL_WARMER_RESET_COUNTS")),
    default_quota_limit=default_quota_limit,
    cost_lesson=_positive_int("AISCHOOL_COST_LESSON", "10"),
    cost_questions=_positive_int("AISCHOOL_COST_QUESTIONS", "5"),
    cost_diagnostic=_positive_int("AISCHOOL_COST_DIAGNOSTIC", "5"),
    cost_homework=_positive_int("AISCHOOL_COST_HOMEWORK", "15"),
    worker_concurrency=_positive_int("AISCHOOL_WORKER_CONCURRENCY", "2"),
    job_visibility_timeout_seconds=_positive_int("AISCHOOL_JOB_VISIBILITY_TIMEOUT_SECONDS", "900"),
    max_homework_image_bytes=_positive_int("AISCHOOL_MAX_HOMEWORK_IMAGE_BYTES", "10485760"),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    content_model=(os.getenv("AISCHOOL_CONTENT_MODEL") or "gemini-2.5-pro").strip(),
    quiz_model=(os.getenv("AISCHOOL_QUIZ_MODEL") or "gemini-2.5-flash").strip(),
    task_secret=_optional_str(os.getenv("AISCHOOL_TASK_SECRET")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  debug = _parse_bool(os.getenv("AISCHOOL_DEBUG"))
  pg_dsn = _optional_str(os.getenv("AISCHOOL_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn)
