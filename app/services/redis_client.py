"""Async Redis connectivity shared by the content cache and popularity tracker."""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_TIMEOUT_SECONDS = 1.0


def create_redis_client(url: str, *, timeout_seconds: float = DEFAULT_REDIS_TIMEOUT_SECONDS) -> aioredis.Redis:
  """Build a client whose commands give up after one attempt of at most timeout_seconds.

  A server that accepts connections but never answers surfaces as a redis TimeoutError.
  """
  return aioredis.from_url(
    url,
    decode_responses=False,
    socket_connect_timeout=timeout_seconds,
    socket_timeout=timeout_seconds,
    retry=Retry(NoBackoff(), 0),
  )


async def connect_redis(url: str | None, *, timeout_seconds: float = DEFAULT_REDIS_TIMEOUT_SECONDS) -> aioredis.Redis | None:
  """Open a Redis connection, or return None when it is unconfigured or unreachable."""
  if not url:
    logger.warning("Redis URL is not configured; caching and popularity tracking are disabled.")
    return None

  client = create_redis_client(url, timeout_seconds=timeout_seconds)
  try:
    await client.ping()
  except (RedisError, OSError) as exc:
    logger.warning("Redis unavailable at startup, continuing without it: %s", exc)
    await close_redis(client)
    return None

  logger.info("Redis connected.")
  return client


async def close_redis(client: aioredis.Redis | None) -> None:
  if client is None:
    return
  try:
    await client.aclose()
  except (RedisError, OSError) as exc:
    logger.warning("Failed to close Redis connection: %s", exc)
