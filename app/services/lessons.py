"""Lesson content generation with tier-shared caching."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.output import LessonContent, parse_lesson_output
from app.ai.prompts import build_lesson_prompt
from app.ai.providers.base import TextGenerator
from app.schema.sql import ConfidenceTier, User
from app.services.content_cache import ContentCache, content_cache_key
from app.services.curriculum import LessonDetails, find_lesson, list_curriculum_data
from app.services.popularity import PopularityTracker
from app.services.quotas import QuotaLedger
from app.services.skills import get_skill_record

logger = logging.getLogger(__name__)

LESSON_MAX_OUTPUT_TOKENS = 1500
LESSON_USAGE_ACTION = "lesson_generation"


async def generate_lesson_payload(
  generator: TextGenerator, *, lesson: LessonDetails, mastery_score: float, preferences: dict[str, Any] | None, model: str | None
) -> LessonContent:
  """Generate and strictly decode lesson content. Shared with the cache warmer."""
  prompt = build_lesson_prompt(lesson_name=lesson.name, mastery_score=mastery_score, preferences=preferences)
  text = await generator.generate(prompt, max_output_tokens=LESSON_MAX_OUTPUT_TOKENS, model=model)
  return parse_lesson_output(text)


class LessonService:
  """Serve lesson content from the tier cache, generating and charging on a miss."""

  def __init__(
    self,
    *,
    ledger: QuotaLedger,
    cache: ContentCache,
    popularity: PopularityTracker,
    generator: TextGenerator,
    cost: int,
    cache_ttl_seconds: int,
    model: str | None = None,
  ) -> None:
    self._ledger = ledger
    self._cache = cache
    self._popularity = popularity
    self._generator = generator
    self._cost = cost
    self._cache_ttl_seconds = cache_ttl_seconds
    self._model = model

  async def generate_lesson_content(self, session: AsyncSession, *, user: User, lesson_id: str) -> LessonContent:
    await self._ledger.ensure_quota(user.id, self._cost)
    # Count demand before lookup so the warmer sees every request, hit or miss.
    await self._popularity.increment(lesson_id)

    lesson = find_lesson(await list_curriculum_data(session), lesson_id)

    record = await get_skill_record(session, user.id, lesson_id)
    if record is None:
      mastery_score, tier = 0.0, ConfidenceTier.LOW
    else:
      mastery_score, tier = float(record.mastery_score), ConfidenceTier(record.confidence)

    cache_key = content_cache_key(lesson_id, tier)
    cached = await self._cache.get(cache_key)
    if cached is not None:
      logger.debug("Lesson cache hit key=%s", cache_key)
      return cached

    # End the read transaction so no pooled connection sits idle in it during generation.
    await session.commit()
    content = await generate_lesson_payload(self._generator, lesson=lesson, mastery_score=mastery_score, preferences=user.preferences, model=self._model)
    await self._cache.put(cache_key, content, self._cache_ttl_seconds)
    await self._ledger.reserve(user.id, self._cost, action=LESSON_USAGE_ACTION)
    logger.info("Generated lesson content lesson_id=%s tier=%s", lesson_id, tier.value)
    return content
