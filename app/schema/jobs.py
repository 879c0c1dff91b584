from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, LargeBinary, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class HomeworkJob(Base):
  __tablename__ = "homework_jobs"
  __table_args__ = (Index("ix_homework_jobs_status_updated", "status", "updated_at"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
  learning_style: Mapped[str] = mapped_column(String, nullable=False)
  image_bytes: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True, deferred=True)
  image_media_type: Mapped[str] = mapped_column(String, nullable=False)
  solution: Mapped[str | None] = mapped_column(Text, nullable=True)
  failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
