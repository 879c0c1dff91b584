from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status

from app.api.deps import get_services
from app.config import Settings, get_settings
from app.services.container import ServiceContainer

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


def _require_task_secret(settings: Settings, authorization: str | None, x_aischool_task_secret: str | None) -> None:
  # Secure-by-default: internal task endpoints must be authenticated.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  shared_secret_valid = secrets.compare_digest((x_aischool_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to internal task endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


@router.post("/warm-cache", status_code=status.HTTP_202_ACCEPTED)
async def warm_cache_task(
  background_tasks: BackgroundTasks,
  settings: Annotated[Settings, Depends(get_settings)],
  services: Annotated[ServiceContainer, Depends(get_services)],
  authorization: str | None = Header(default=None),
  x_aischool_task_secret: str | None = Header(default=None),
) -> dict[str, str]:
  """
  Trigger a cache warm sweep for an external scheduler.
  Responds immediately; the sweep runs in the background.
  """
  _require_task_secret(settings, authorization, x_aischool_task_secret)
  logger.info("Received cache warm trigger")
  background_tasks.add_task(services.run_warmer)
  return {"status": "accepted"}
