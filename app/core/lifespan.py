import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.core.database import dispose_engine, get_session_factory
from app.core.firebase import initialize_firebase
from app.core.logging import initialize_logging
from app.jobs.worker import recover_jobs
from app.services.container import build_container


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Build shared services, start background workers and tear them down on shutdown."""
  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  initialize_logging(settings)
  logger.info("Starting AiSchool engine environment=%s database=%s", settings.environment, _redact_dsn(settings.pg_dsn))

  session_factory = get_session_factory()
  if session_factory is None:
    raise RuntimeError("AISCHOOL_PG_DSN must be set; quota and job state live in Postgres.")

  initialize_firebase()

  container = await build_container(settings, session_factory)
  app.state.services = container
  container.start()

  # Fail stuck jobs and pick up unclaimed ones left by the previous process.
  try:
    await recover_jobs(container.jobs_repo, container.queue, visibility_timeout_seconds=settings.job_visibility_timeout_seconds)
  except SQLAlchemyError:
    logger.warning("Homework job recovery failed at startup; continuing.", exc_info=True)

  logger.info("Startup complete.")
  try:
    yield
  finally:
    await container.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
