"""Lesson popularity counters consumed by the cache warmer."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_COUNT_KEY_PREFIX = "lesson_count:"


class PopularityTracker(Protocol):
  async def increment(self, lesson_id: str) -> None:
    """Count one generation request for the lesson."""

  async def list_counts(self) -> dict[str, int]:
    """Return every counter, in the order the backend yields them."""

  async def reset(self, lesson_ids: Iterable[str]) -> None:
    """Drop the counters for the given lessons."""


class NullPopularityTracker:
  async def increment(self, lesson_id: str) -> None:
    return None

  async def list_counts(self) -> dict[str, int]:
    return {}

  async def reset(self, lesson_ids: Iterable[str]) -> None:
    return None


class MemoryPopularityTracker:
  """Process-local counters; dict order is first-increment order."""

  def __init__(self) -> None:
    self._counts: dict[str, int] = {}

  async def increment(self, lesson_id: str) -> None:
    self._counts[lesson_id] = self._counts.get(lesson_id, 0) + 1

  async def list_counts(self) -> dict[str, int]:
    return dict(self._counts)

  async def reset(self, lesson_ids: Iterable[str]) -> None:
    for lesson_id in lesson_ids:
      self._counts.pop(lesson_id, None)


class RedisPopularityTracker:
  """Counters stored as lesson_count:{lesson_id} integers in Redis."""

  def __init__(self, client: aioredis.Redis, *, scan_batch_size: int = 200) -> None:
    self._client = client
    self._scan_batch_size = scan_batch_size

  async def increment(self, lesson_id: str) -> None:
    try:
      await self._client.incr(_COUNT_KEY_PREFIX + lesson_id)
    except (RedisError, OSError) as exc:
      logger.warning("Popularity increment failed for lesson %s: %s", lesson_id, exc)

  async def list_counts(self) -> dict[str, int]:
    try:
      keys = [key async for key in self._client.scan_iter(match=f"{_COUNT_KEY_PREFIX}*", count=self._scan_batch_size)]
      if not keys:
        return {}
      values = await self._client.mget(keys)
    except (RedisError, OSError) as exc:
      logger.warning("Popularity listing failed, returning no counters: %s", exc)
      return {}

    counts: dict[str, int] = {}
    for key, value in zip(keys, values, strict=True):
      if value is None:
        # Reset between SCAN and MGET.
        continue
      key_text = key.decode() if isinstance(key, bytes) else str(key)
      try:
        counts[key_text.removeprefix(_COUNT_KEY_PREFIX)] = int(value)
      except ValueError:
        logger.warning("Ignoring non-integer popularity counter %s", key_text)
    return counts

  async def reset(self, lesson_ids: Iterable[str]) -> None:
    keys = [_COUNT_KEY_PREFIX + lesson_id for lesson_id in lesson_ids]
    if not keys:
      return
    try:
      await self._client.delete(*keys)
    except (RedisError, OSError) as exc:
      logger.warning("Popularity reset failed: %s", exc)


def build_popularity_tracker(backend: str, client: aioredis.Redis | None) -> PopularityTracker:
  if backend == "memory":
    return MemoryPopularityTracker()
  if backend == "redis" and client is not None:
    return RedisPopularityTracker(client)
  return NullPopularityTracker()
