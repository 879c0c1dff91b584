"""Lesson content cache keyed by (lesson, confidence tier).

Entries are shared by every user in the same tier for a lesson. The cache is an
accelerator only: backend failures are logged and treated as a miss or a no-op,
never surfaced to the caller.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import msgspec
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.ai.output import LessonContent
from app.schema.sql import ConfidenceTier

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "lesson_content:"


def content_cache_key(lesson_id: str, tier: ConfidenceTier | str) -> str:
  """Return the cache key for a lesson and confidence tier."""
  tier_value = tier.value if isinstance(tier, ConfidenceTier) else str(tier)
  return f"{lesson_id}:{tier_value}"


class ContentCache(Protocol):
  async def get(self, key: str) -> LessonContent | None:
    """Return the cached entry or None on miss."""

  async def put(self, key: str, value: LessonContent, ttl_seconds: int) -> None:
    """Store an entry, overwriting any existing value."""

  async def invalidate(self, key: str) -> None:
    """Remove an entry if present."""


class NullContentCache:
  """Cache that never stores anything."""

  async def get(self, key: str) -> LessonContent | None:
    return None

  async def put(self, key: str, value: LessonContent, ttl_seconds: int) -> None:
    return None

  async def invalidate(self, key: str) -> None:
    return None


class MemoryContentCache:
  """Process-local cache with per-entry expiry, for development and tests."""

  def __init__(self, *, clock=time.monotonic) -> None:
    self._clock = clock
    self._entries: dict[str, tuple[float, LessonContent]] = {}

  async def get(self, key: str) -> LessonContent | None:
    entry = self._entries.get(key)
    if entry is None:
      return None
    expires_at, value = entry
    if self._clock() >= expires_at:
      self._entries.pop(key, None)
      return None
    return value

  async def put(self, key: str, value: LessonContent, ttl_seconds: int) -> None:
    if ttl_seconds <= 0:
      raise ValueError("ttl_seconds must be positive.")
    now = self._clock()
    # Writes purge expired entries so keys that are never read again do not accumulate.
    for expired_key in [entry_key for entry_key, (expires_at, _) in self._entries.items() if now >= expires_at]:
      del self._entries[expired_key]
    self._entries[key] = (now + ttl_seconds, value)

  async def invalidate(self, key: str) -> None:
    self._entries.pop(key, None)


class RedisContentCache:
  """Redis-backed cache storing msgspec-encoded lesson content with an expiry."""

  def __init__(self, client: aioredis.Redis) -> None:
    self._client = client
    self._encoder = msgspec.json.Encoder()
    self._decoder = msgspec.json.Decoder(LessonContent)

  async def get(self, key: str) -> LessonContent | None:
    try:
      raw = await self._client.get(_REDIS_KEY_PREFIX + key)
    except (RedisError, OSError) as exc:
      logger.warning("Content cache read failed for %s, treating as miss: %s", key, exc)
      return None

    if raw is None:
      return None

    try:
      return self._decoder.decode(raw)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
      # A corrupt entry is a miss; the next fill overwrites it.
      logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
      return None

  async def put(self, key: str, value: LessonContent, ttl_seconds: int) -> None:
    if ttl_seconds <= 0:
      raise ValueError("ttl_seconds must be positive.")
    try:
      await self._client.set(_REDIS_KEY_PREFIX + key, self._encoder.encode(value), ex=ttl_seconds)
    except (RedisError, OSError) as exc:
      logger.warning("Content cache write failed for %s: %s", key, exc)

  async def invalidate(self, key: str) -> None:
    try:
      await self._client.delete(_REDIS_KEY_PREFIX + key)
    except (RedisError, OSError) as exc:
      logger.warning("Content cache invalidation failed for %s: %s", key, exc)


def build_content_cache(backend: str, client: aioredis.Redis | None) -> ContentCache:
  """Select the cache backend, falling back to the null cache when Redis is missing."""
  if backend == "memory":
    return MemoryContentCache()
  if backend == "redis" and client is not None:
    return RedisContentCache(client)
  if backend == "redis":
    logger.warning("Redis cache backend requested but no connection is available; using the null cache.")
  return NullContentCache()
