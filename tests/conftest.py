"""Shared fixtures and in-memory doubles for the test suite."""

from __future__ import annotations

import dataclasses
import datetime
import os
import uuid
from collections.abc import Callable
from typing import Any

# Ensure required settings are available before importing the app.
os.environ.setdefault("AISCHOOL_ALLOWED_ORIGINS", "http://localhost")

import pytest  # noqa: E402

from app.ai.providers.base import ImagePayload  # noqa: E402
from app.ai.prompts import DEFAULT_PREFERENCES  # noqa: E402
from app.jobs.models import HomeworkJobRecord  # noqa: E402
from app.schema.sql import User  # noqa: E402
from app.services.quotas import QuotaLedger  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


class InMemoryQuotaStore:
  """Quota store keeping usage in a dict."""

  def __init__(self) -> None:
    self.usage: dict[uuid.UUID, list[int]] = {}
    self.log: list[tuple[uuid.UUID, str, int]] = []

  def add_user(self, user_id: uuid.UUID, *, used: int = 0, limit: int = 1000) -> None:
    self.usage[user_id] = [used, limit]

  def used(self, user_id: uuid.UUID) -> int:
    return self.usage[user_id][0]

  async def read_usage(self, user_id: uuid.UUID) -> tuple[int, int]:
    if user_id not in self.usage:
      raise LookupError(f"User {user_id} not found.")
    used, limit = self.usage[user_id]
    return used, limit

  async def add_usage(self, user_id: uuid.UUID, cost: int, *, action: str) -> None:
    if user_id not in self.usage:
      raise LookupError(f"User {user_id} not found.")
    self.usage[user_id][0] += cost
    self.log.append((user_id, action, cost))


class InMemoryJobsRepository:
  """Jobs repository with the same compare-and-set semantics as the Postgres one."""

  def __init__(self) -> None:
    self.jobs: dict[str, HomeworkJobRecord] = {}
    self.images: dict[str, ImagePayload] = {}
    self.transitions: list[tuple[str, str, str]] = []

  async def create_job(self, record: HomeworkJobRecord, *, image: ImagePayload) -> None:
    now = datetime.datetime.now(datetime.UTC)
    self.jobs[record.job_id] = dataclasses.replace(record, created_at=now, updated_at=now)
    self.images[record.job_id] = image

  async def get_job(self, job_id: str, *, user_id: uuid.UUID | None = None) -> HomeworkJobRecord | None:
    record = self.jobs.get(job_id)
    if record is None or (user_id is not None and record.user_id != user_id):
      return None
    return dataclasses.replace(record)

  async def load_image(self, job_id: str) -> ImagePayload | None:
    return self.images.get(job_id)

  def _transition(self, job_id: str, from_statuses: tuple[str, ...], status: str, **changes: Any) -> bool:
    record = self.jobs.get(job_id)
    if record is None or record.status not in from_statuses:
      return False
    now = datetime.datetime.now(datetime.UTC)
    self.transitions.append((job_id, record.status, status))
    self.jobs[job_id] = dataclasses.replace(record, status=status, updated_at=now, **changes)
    if status in {"completed", "failed"}:
      self.images.pop(job_id, None)
    return True

  async def claim_job(self, job_id: str) -> bool:
    return self._transition(job_id, ("pending",), "processing", started_at=datetime.datetime.now(datetime.UTC))

  async def complete_job(self, job_id: str, *, solution: str) -> bool:
    return self._transition(job_id, ("processing",), "completed", solution=solution, completed_at=datetime.datetime.now(datetime.UTC))

  async def fail_job(self, job_id: str, *, reason: str, from_statuses: tuple[str, ...] = ("processing",)) -> bool:
    return self._transition(job_id, from_statuses, "failed", failure_reason=reason, completed_at=datetime.datetime.now(datetime.UTC))

  async def list_stale_processing(self, *, started_before: datetime.datetime) -> list[str]:
    return [job_id for job_id, record in self.jobs.items() if record.status == "processing" and record.started_at is not None and record.started_at < started_before]

  async def list_pending(self) -> list[str]:
    return [job_id for job_id, record in self.jobs.items() if record.status == "pending"]


class ScriptedGenerator:
  """Text generator double returning a fixed reply or one computed from the prompt."""

  def __init__(self, reply: str | Callable[[str], str] = "", *, error: Exception | None = None) -> None:
    self.reply = reply
    self.error = error
    self.calls: list[dict[str, Any]] = []

  async def generate(self, prompt: str, *, max_output_tokens: int, image: ImagePayload | None = None, model: str | None = None) -> str:
    self.calls.append({"prompt": prompt, "max_output_tokens": max_output_tokens, "image": image, "model": model})
    if self.error is not None:
      raise self.error
    if callable(self.reply):
      return self.reply(prompt)
    return self.reply


class FakeSessionContext:
  """Async context manager yielding a fixed object, standing in for a session or transaction."""

  def __init__(self, value: Any) -> None:
    self.value = value

  async def __aenter__(self) -> Any:
    return self.value

  async def __aexit__(self, *exc_info: object) -> bool:
    return False


@pytest.fixture
def quota_store() -> InMemoryQuotaStore:
  return InMemoryQuotaStore()


@pytest.fixture
def ledger(quota_store: InMemoryQuotaStore) -> QuotaLedger:
  return QuotaLedger(quota_store)


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepository:
  return InMemoryJobsRepository()


@pytest.fixture
def generator_factory() -> Callable[..., ScriptedGenerator]:
  return ScriptedGenerator


@pytest.fixture
def session_context_factory() -> Callable[[Any], FakeSessionContext]:
  return FakeSessionContext


@pytest.fixture
def make_user(quota_store: InMemoryQuotaStore) -> Callable[..., User]:
  """Build a detached User row and register it with the quota store."""

  def _make_user(*, used: int = 0, limit: int = 1000, preferences: dict[str, Any] | None = None) -> User:
    user_id = uuid.uuid4()
    user = User(
      id=user_id,
      firebase_uid=f"uid-{user_id.hex[:8]}",
      email=f"{user_id.hex[:8]}@example.com",
      preferences=preferences if preferences is not None else dict(DEFAULT_PREFERENCES),
      quota_used=used,
      quota_limit=limit,
    )
    quota_store.add_user(user_id, used=used, limit=limit)
    return user

  return _make_user


@pytest.fixture
def curriculum_documents() -> list[dict[str, Any]]:
  return [
    {
      "subjects": [
        {
          "name": "Science",
          "units": [
            {
              "unitId": "U1",
              "name": "Plants",
              "chapters": [
                {
                  "name": "Energy",
                  "lessons": [
                    {"lessonId": "L1", "name": "Photosynthesis", "objectives": ["Define photosynthesis", "Name its inputs"]},
                    {"lessonId": "L2", "name": "Respiration", "objectives": ["Compare with photosynthesis"]},
                  ],
                }
              ],
            },
            {"unitId": "U2", "name": "Cells", "chapters": [{"name": "Structure", "lessons": [{"lessonId": "L3", "name": "The Cell", "objectives": ["Label a cell"]}]}]},
          ],
        }
      ]
    }
  ]
