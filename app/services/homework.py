"""Homework submission and status lookup."""

from __future__ import annotations

import logging
import uuid

from app.ai.providers.base import ImagePayload
from app.jobs.models import HomeworkJobRecord
from app.schema.sql import User
from app.services.quotas import QuotaLedger
from app.services.tasks.interface import TaskEnqueuer
from app.services.users import default_preferences
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


class InvalidHomeworkImageError(ValueError):
  """Raised when an uploaded homework image is missing, too large or of an unsupported type."""


def validate_homework_image(data: bytes, media_type: str | None, *, max_bytes: int) -> ImagePayload:
  normalized_type = (media_type or "").split(";", 1)[0].strip().lower()
  if not data:
    raise InvalidHomeworkImageError("No image file uploaded.")
  if normalized_type not in ALLOWED_IMAGE_TYPES:
    raise InvalidHomeworkImageError(f"Unsupported image type '{normalized_type or 'unknown'}'. Use JPEG, PNG, GIF or WebP.")
  if len(data) > max_bytes:
    raise InvalidHomeworkImageError(f"Image exceeds the {max_bytes} byte limit.")
  return ImagePayload(data=data, media_type=normalized_type)


class HomeworkService:
  def __init__(self, *, jobs_repo: JobsRepository, enqueuer: TaskEnqueuer, ledger: QuotaLedger, cost: int, max_image_bytes: int) -> None:
    self._jobs_repo = jobs_repo
    self._enqueuer = enqueuer
    self._ledger = ledger
    self._cost = cost
    self._max_image_bytes = max_image_bytes

  async def submit(self, *, user: User, data: bytes, media_type: str | None) -> str:
    """Validate, check quota, persist a pending job and hand it to the queue.

    Quota is charged by the runner once the job completes.
    """
    image = validate_homework_image(data, media_type, max_bytes=self._max_image_bytes)
    await self._ledger.ensure_quota(user.id, self._cost)

    preferences = user.preferences or default_preferences()
    learning_style = str(preferences.get("style") or default_preferences()["style"])
    record = HomeworkJobRecord(job_id=generate_job_id(), user_id=user.id, status="pending", learning_style=learning_style, image_media_type=image.media_type)
    await self._jobs_repo.create_job(record, image=image)
    await self._enqueuer.enqueue(record.job_id)
    logger.info("Accepted homework job %s for user %s", record.job_id, user.id)
    return record.job_id

  async def get_status(self, *, user_id: uuid.UUID, job_id: str) -> HomeworkJobRecord | None:
    return await self._jobs_repo.get_job(job_id, user_id=user_id)
