"""Storage interfaces for homework jobs."""

from __future__ import annotations

import datetime
import uuid
from typing import Protocol

from app.ai.providers.base import ImagePayload
from app.jobs.models import HomeworkJobRecord


class JobsRepository(Protocol):
  """Repository contract for job persistence.

  Status transitions are compare-and-set: each returns False without writing
  when the job is not in the expected source state, so a terminal job is never
  moved again.
  """

  async def create_job(self, record: HomeworkJobRecord, *, image: ImagePayload) -> None:
    """Persist a pending job together with its image."""

  async def get_job(self, job_id: str, *, user_id: uuid.UUID | None = None) -> HomeworkJobRecord | None:
    """Fetch a job, optionally scoped to its owner."""

  async def load_image(self, job_id: str) -> ImagePayload | None:
    """Return the stored image for a job that has not finished."""

  async def claim_job(self, job_id: str) -> bool:
    """Move pending -> processing."""

  async def complete_job(self, job_id: str, *, solution: str) -> bool:
    """Move processing -> completed with the solution."""

  async def fail_job(self, job_id: str, *, reason: str, from_statuses: tuple[str, ...] = ("processing",)) -> bool:
    """Move a job in one of from_statuses -> failed with the reason."""

  async def list_stale_processing(self, *, started_before: datetime.datetime) -> list[str]:
    """Return ids of jobs stuck in processing since before the cutoff."""

  async def list_pending(self) -> list[str]:
    """Return ids of jobs that were never claimed, oldest first."""
