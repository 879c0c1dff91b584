"""Per-user usage quota ledger.

Every costed operation follows the same discipline: ``ensure_quota`` before the
work starts, the work itself, then ``reserve`` once the work has succeeded.
Cache hits and failed operations are never charged.

The check and the reservation are not serialized against each other, so two
overlapping requests for the same user can both pass the check and push
``quota_used`` past ``quota_limit``. That overrun is accepted behaviour.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.schema.sql import User, UserUsageLog

logger = logging.getLogger(__name__)

INSUFFICIENT_QUOTA_MESSAGE = "Insufficient quota. Please upgrade your plan."


class QuotaExceededError(RuntimeError):
  """Raised when an operation's cost would exceed the user's remaining quota."""

  def __init__(self, *, user_id: uuid.UUID, cost: int, used: int, limit: int) -> None:
    super().__init__(INSUFFICIENT_QUOTA_MESSAGE)
    self.user_id = user_id
    self.cost = cost
    self.used = used
    self.limit = limit


@dataclass(frozen=True)
class QuotaSnapshot:
  """Current usage for a single user."""

  used: int
  limit: int
  remaining: int


class QuotaStore(Protocol):
  async def read_usage(self, user_id: uuid.UUID) -> tuple[int, int]:
    """Return (quota_used, quota_limit) or raise LookupError for unknown users."""

  async def add_usage(self, user_id: uuid.UUID, cost: int, *, action: str) -> None:
    """Add cost to quota_used and append a usage log entry."""


class SqlQuotaStore:
  """Quota storage on the users table with an append-only usage log."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
    self._session_factory = session_factory

  async def read_usage(self, user_id: uuid.UUID) -> tuple[int, int]:
    async with self._session_factory() as session:
      result = await session.execute(select(User.quota_used, User.quota_limit).where(User.id == user_id))
      row = result.one_or_none()
    if row is None:
      raise LookupError(f"User {user_id} not found.")
    return int(row.quota_used), int(row.quota_limit)

  async def add_usage(self, user_id: uuid.UUID, cost: int, *, action: str) -> None:
    async with self._session_factory() as session:
      async with session.begin():
        # Increment in SQL so concurrent reservations never lose an update.
        stmt = update(User).where(User.id == user_id).values(quota_used=User.quota_used + cost)
        result = await session.execute(stmt)
        if result.rowcount == 0:
          raise LookupError(f"User {user_id} not found.")
        session.add(UserUsageLog(user_id=user_id, action_type=action, quantity=cost))


class QuotaLedger:
  """Check and reserve usage against a user's fixed quota limit."""

  def __init__(self, store: QuotaStore) -> None:
    self._store = store

  async def check_quota(self, user_id: uuid.UUID, cost: int) -> bool:
    """Return True when the user can afford cost. Never mutates usage."""
    if cost < 0:
      raise ValueError("cost must be >= 0")
    used, limit = await self._store.read_usage(user_id)
    return used + cost <= limit

  async def ensure_quota(self, user_id: uuid.UUID, cost: int) -> None:
    """Raise QuotaExceededError when the user cannot afford cost."""
    if cost < 0:
      raise ValueError("cost must be >= 0")
    used, limit = await self._store.read_usage(user_id)
    if used + cost > limit:
      logger.info("Quota check failed user_id=%s cost=%s used=%s limit=%s", user_id, cost, used, limit)
      raise QuotaExceededError(user_id=user_id, cost=cost, used=used, limit=limit)

  async def reserve(self, user_id: uuid.UUID, cost: int, *, action: str) -> None:
    """Charge cost to the user. Only called after the work succeeded."""
    if cost <= 0:
      raise ValueError("cost must be positive.")
    await self._store.add_usage(user_id, cost, action=action)
    logger.debug("Reserved quota user_id=%s cost=%s action=%s", user_id, cost, action)

  async def snapshot(self, user_id: uuid.UUID) -> QuotaSnapshot:
    used, limit = await self._store.read_usage(user_id)
    return QuotaSnapshot(used=used, limit=limit, remaining=max(limit - used, 0))
