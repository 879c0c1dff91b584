from __future__ import annotations

import datetime
import uuid
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.schema.jobs import HomeworkJob  # noqa: F401


class ConfidenceTier(str, Enum):
  LOW = "low"
  MEDIUM = "medium"
  HIGH = "high"


class User(Base):
  __tablename__ = "users"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  firebase_uid: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  preferences: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
  quota_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  quota_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserUsageLog(Base):
  __tablename__ = "user_usage_logs"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
  action_type: Mapped[str] = mapped_column(String, nullable=False)
  quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SkillRecord(Base):
  __tablename__ = "skill_records"
  __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="ux_skill_records_user_lesson"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
  lesson_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  mastery_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
  confidence: Mapped[ConfidenceTier] = mapped_column(
    SAEnum(ConfidenceTier, name="confidence_tier", values_callable=lambda tiers: [tier.value for tier in tiers]), nullable=False, default=ConfidenceTier.LOW
  )
  last_attempt: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Curriculum(Base):
  __tablename__ = "curriculums"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  country_code: Mapped[str] = mapped_column(String, nullable=False, index=True)
  data: Mapped[dict] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
