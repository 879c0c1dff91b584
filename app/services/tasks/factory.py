from __future__ import annotations

from app.config import Settings
from app.services.tasks.queue import InProcessTaskQueue, JobHandler


def get_task_enqueuer(settings: Settings, handler: JobHandler) -> InProcessTaskQueue:
  """Factory to get the configured task enqueuer."""
  return InProcessTaskQueue(handler, concurrency=settings.worker_concurrency)
