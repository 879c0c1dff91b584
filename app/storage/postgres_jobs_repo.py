"""Postgres-backed repository for homework jobs using SQLAlchemy."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai.providers.base import ImagePayload
from app.jobs.models import HomeworkJobRecord
from app.schema.jobs import HomeworkJob
from app.storage.jobs_repo import JobsRepository


def _now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


class PostgresJobsRepository(JobsRepository):
  """Persist homework jobs to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None) -> None:
    if session_factory is None:
      raise RuntimeError("Database not initialized")
    self._session_factory = session_factory

  async def create_job(self, record: HomeworkJobRecord, *, image: ImagePayload) -> None:
    async with self._session_factory() as session:
      job = HomeworkJob(
        id=record.job_id,
        user_id=record.user_id,
        status=record.status,
        learning_style=record.learning_style,
        image_bytes=image.data,
        image_media_type=image.media_type,
      )
      session.add(job)
      await session.commit()

  async def get_job(self, job_id: str, *, user_id: uuid.UUID | None = None) -> HomeworkJobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(HomeworkJob, job_id)
      if row is None:
        return None
      if user_id is not None and row.user_id != user_id:
        return None
      return self._model_to_record(row)

  async def load_image(self, job_id: str) -> ImagePayload | None:
    async with self._session_factory() as session:
      result = await session.execute(select(HomeworkJob.image_bytes, HomeworkJob.image_media_type).where(HomeworkJob.id == job_id))
      row = result.one_or_none()
    if row is None or row.image_bytes is None:
      return None
    return ImagePayload(data=bytes(row.image_bytes), media_type=row.image_media_type)

  async def _transition(self, job_id: str, *, from_statuses: tuple[str, ...], values: dict) -> bool:
    async with self._session_factory() as session:
      now = _now()
      stmt = update(HomeworkJob).where(HomeworkJob.id == job_id, HomeworkJob.status.in_(from_statuses)).values(updated_at=now, **values)
      result = await session.execute(stmt)
      await session.commit()
      return result.rowcount == 1

  async def claim_job(self, job_id: str) -> bool:
    return await self._transition(job_id, from_statuses=("pending",), values={"status": "processing", "started_at": _now()})

  async def complete_job(self, job_id: str, *, solution: str) -> bool:
    # The image is only needed until the job finishes.
    values = {"status": "completed", "solution": solution, "completed_at": _now(), "image_bytes": None}
    return await self._transition(job_id, from_statuses=("processing",), values=values)

  async def fail_job(self, job_id: str, *, reason: str, from_statuses: tuple[str, ...] = ("processing",)) -> bool:
    values = {"status": "failed", "failure_reason": reason, "completed_at": _now(), "image_bytes": None}
    return await self._transition(job_id, from_statuses=from_statuses, values=values)

  async def list_stale_processing(self, *, started_before: datetime.datetime) -> list[str]:
    async with self._session_factory() as session:
      stmt = select(HomeworkJob.id).where(HomeworkJob.status == "processing", HomeworkJob.started_at < started_before)
      result = await session.execute(stmt)
      return list(result.scalars().all())

  async def list_pending(self) -> list[str]:
    async with self._session_factory() as session:
      stmt = select(HomeworkJob.id).where(HomeworkJob.status == "pending").order_by(HomeworkJob.created_at)
      result = await session.execute(stmt)
      return list(result.scalars().all())

  def _model_to_record(self, row: HomeworkJob) -> HomeworkJobRecord:
    return HomeworkJobRecord(
      job_id=row.id,
      user_id=row.user_id,
      status=row.status,  # type: ignore[arg-type]
      learning_style=row.learning_style,
      image_media_type=row.image_media_type,
      solution=row.solution,
      failure_reason=row.failure_reason,
      created_at=row.created_at,
      started_at=row.started_at,
      updated_at=row.updated_at,
      completed_at=row.completed_at,
    )
