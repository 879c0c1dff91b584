"""Domain models for asynchronous homework jobs."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from typing import Literal

JobStatus = Literal["pending", "processing", "completed", "failed"]

DEFAULT_FAILURE_REASON = "An unknown error occurred during AI processing."
TIMED_OUT_FAILURE_REASON = "Processing timed out before completion."


@dataclass
class HomeworkJobRecord:
  """Represents a homework-solving job. The image itself is loaded separately."""

  job_id: str
  user_id: uuid.UUID
  status: JobStatus
  learning_style: str
  image_media_type: str
  solution: str | None = None
  failure_reason: str | None = None
  created_at: datetime.datetime | None = None
  started_at: datetime.datetime | None = None
  updated_at: datetime.datetime | None = None
  completed_at: datetime.datetime | None = None
