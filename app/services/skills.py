"""Per-user lesson mastery and confidence tiers."""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.schema.sql import ConfidenceTier, SkillRecord
from app.services.content_cache import ContentCache, content_cache_key

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_THRESHOLD = 0.7
MEDIUM_CONFIDENCE_THRESHOLD = 0.4


@dataclass(frozen=True)
class SkillUpdate:
  lesson_id: str
  mastery_score: float
  confidence: ConfidenceTier
  previous_confidence: ConfidenceTier

  @property
  def tier_changed(self) -> bool:
    return self.confidence != self.previous_confidence


def confidence_from_mastery(mastery_score: float) -> ConfidenceTier:
  """Map a mastery score in [0, 1] to a tier. Thresholds are inclusive lower bounds."""
  if mastery_score >= HIGH_CONFIDENCE_THRESHOLD:
    return ConfidenceTier.HIGH
  if mastery_score >= MEDIUM_CONFIDENCE_THRESHOLD:
    return ConfidenceTier.MEDIUM
  return ConfidenceTier.LOW


def compute_mastery(score: int, total_questions: int) -> float:
  """Return score / total_questions, or 0.0 when there were no questions."""
  if total_questions < 0:
    raise ValueError("totalQuestions must be zero or a positive integer.")
  if total_questions == 0:
    return 0.0
  if score < 0 or score > total_questions:
    raise ValueError("score must be between 0 and totalQuestions.")
  return score / total_questions


def _utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


async def get_skill_record(session: AsyncSession, user_id: uuid.UUID, lesson_id: str) -> SkillRecord | None:
  result = await session.execute(select(SkillRecord).where(SkillRecord.user_id == user_id, SkillRecord.lesson_id == lesson_id))
  return result.scalar_one_or_none()


async def list_skill_profile(session: AsyncSession, user_id: uuid.UUID) -> list[SkillRecord]:
  result = await session.execute(select(SkillRecord).where(SkillRecord.user_id == user_id).order_by(SkillRecord.lesson_id))
  return list(result.scalars().all())


async def update_skill(session: AsyncSession, *, user_id: uuid.UUID, lesson_id: str, score: int, total_questions: int, cache: ContentCache) -> SkillUpdate:
  """Record a quiz attempt and invalidate the cached content of a newly entered tier.

  A missing record counts as the low tier. When the tier does not change no
  cache entry is touched.
  """
  mastery_score = compute_mastery(score, total_questions)
  confidence = confidence_from_mastery(mastery_score)

  existing = await get_skill_record(session, user_id, lesson_id)
  previous_confidence = ConfidenceTier(existing.confidence) if existing is not None else ConfidenceTier.LOW

  now = _utc_now()
  stmt = insert(SkillRecord).values(user_id=user_id, lesson_id=lesson_id, mastery_score=mastery_score, confidence=confidence, last_attempt=now)
  stmt = stmt.on_conflict_do_update(index_elements=[SkillRecord.user_id, SkillRecord.lesson_id], set_={"mastery_score": mastery_score, "confidence": confidence, "last_attempt": now})
  await session.execute(stmt)
  await session.commit()

  update = SkillUpdate(lesson_id=lesson_id, mastery_score=mastery_score, confidence=confidence, previous_confidence=previous_confidence)
  if update.tier_changed:
    await cache.invalidate(content_cache_key(lesson_id, confidence))
    logger.info("Skill tier changed user_id=%s lesson_id=%s %s -> %s", user_id, lesson_id, previous_confidence.value, confidence.value)
  return update
