"""Proactive cache warming for the most requested lessons.

Each run ranks lessons by request count, then fills every missing
(lesson, tier) entry using the same prompt as the request path with a
synthetic mastery score per tier. Existing entries are left alone, so a
second run without new demand generates nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai.prompts import DEFAULT_PREFERENCES
from app.ai.providers.base import TextGenerator
from app.schema.sql import ConfidenceTier
from app.services.content_cache import ContentCache, content_cache_key
from app.services.curriculum import CurriculumItemNotFoundError, find_lesson, list_curriculum_data
from app.services.lessons import generate_lesson_payload
from app.services.popularity import PopularityTracker

logger = logging.getLogger(__name__)

TIER_MASTERY: dict[ConfidenceTier, float] = {ConfidenceTier.LOW: 0.3, ConfidenceTier.MEDIUM: 0.6, ConfidenceTier.HIGH: 0.9}


@dataclass
class WarmReport:
  lessons: list[str] = field(default_factory=list)
  generated: int = 0
  skipped_cached: int = 0
  skipped_missing: list[str] = field(default_factory=list)
  failed: int = 0


def select_top_lessons(counts: Mapping[str, int], top_n: int) -> list[str]:
  """Return the top_n lesson ids by count. Ties keep their original order."""
  if top_n <= 0:
    return []
  ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
  return [lesson_id for lesson_id, _ in ranked[:top_n]]


class ProactiveWarmer:
  def __init__(
    self,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ContentCache,
    popularity: PopularityTracker,
    generator: TextGenerator,
    top_n: int,
    ttl_seconds: int,
    reset_counts: bool = False,
    model: str | None = None,
  ) -> None:
    self._session_factory = session_factory
    self._cache = cache
    self._popularity = popularity
    self._generator = generator
    self._top_n = top_n
    self._ttl_seconds = ttl_seconds
    self._reset_counts = reset_counts
    self._model = model

  async def run(self) -> WarmReport:
    report = WarmReport()
    counts = await self._popularity.list_counts()
    report.lessons = select_top_lessons(counts, self._top_n)
    if not report.lessons:
      logger.info("Cache warmer found no popular lessons.")
      return report

    async with self._session_factory() as session:
      documents = await list_curriculum_data(session)

    for lesson_id in report.lessons:
      try:
        lesson = find_lesson(documents, lesson_id)
      except CurriculumItemNotFoundError:
        report.skipped_missing.append(lesson_id)
        continue

      for tier, mastery_score in TIER_MASTERY.items():
        cache_key = content_cache_key(lesson_id, tier)
        if await self._cache.get(cache_key) is not None:
          report.skipped_cached += 1
          continue
        try:
          content = await generate_lesson_payload(self._generator, lesson=lesson, mastery_score=mastery_score, preferences=DEFAULT_PREFERENCES, model=self._model)
          await self._cache.put(cache_key, content, self._ttl_seconds)
        except Exception:
          logger.exception("Cache warm failed for lesson=%s tier=%s", lesson_id, tier.value)
          report.failed += 1
          continue
        report.generated += 1

    if self._reset_counts:
      await self._popularity.reset(report.lessons)

    logger.info(
      "Cache warm complete: lessons=%d generated=%d cached=%d missing=%d failed=%d",
      len(report.lessons),
      report.generated,
      report.skipped_cached,
      len(report.skipped_missing),
      report.failed,
    )
    return report
