"""User helpers implemented with SQLAlchemy ORM.

Keeps user lookup, provisioning and preference updates in one place so routes
and auth dependencies don't duplicate query logic.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.prompts import DEFAULT_PREFERENCES
from app.schema.sql import User

logger = logging.getLogger(__name__)


def default_preferences() -> dict[str, Any]:
  return copy.deepcopy(DEFAULT_PREFERENCES)


async def get_user_by_firebase_uid(session: AsyncSession, firebase_uid: str) -> User | None:
  """Fetch a user by Firebase UID for the auth path."""
  stmt = select(User).where(User.firebase_uid == firebase_uid)
  result = await session.execute(stmt)
  return result.scalar_one_or_none()


async def create_user(session: AsyncSession, *, firebase_uid: str, email: str, quota_limit: int) -> User:
  """Create a user with zero usage, the default preferences and a fixed quota limit."""
  user = User(id=uuid.uuid4(), firebase_uid=firebase_uid, email=email, preferences=default_preferences(), quota_used=0, quota_limit=quota_limit)
  session.add(user)
  await session.commit()
  await session.refresh(user)
  logger.info("Provisioned user %s", user.id)
  return user


async def get_or_create_user(session: AsyncSession, *, firebase_uid: str, email: str, quota_limit: int) -> User:
  """Return the user for a verified identity, creating it on first sight."""
  user = await get_user_by_firebase_uid(session, firebase_uid)
  if user is not None:
    return user

  try:
    return await create_user(session, firebase_uid=firebase_uid, email=email, quota_limit=quota_limit)
  except IntegrityError:
    # A concurrent first request created the row.
    await session.rollback()
    user = await get_user_by_firebase_uid(session, firebase_uid)
    if user is None:
      raise
    return user


def merge_preferences(current: dict[str, Any] | None, *, style: str | None, tutor_name: str | None) -> dict[str, Any]:
  """Apply a partial preference update on top of the stored (or default) preferences."""
  merged = copy.deepcopy(current) if current else default_preferences()
  if style is not None:
    merged["style"] = style
  if tutor_name is not None:
    persona = dict(merged.get("tutorPersona") or {})
    persona["name"] = tutor_name
    merged["tutorPersona"] = persona
  return merged


async def update_preferences(session: AsyncSession, *, user: User, style: str | None, tutor_name: str | None) -> User:
  user.preferences = merge_preferences(user.preferences, style=style, tutor_name=tutor_name)
  session.add(user)
  await session.commit()
  await session.refresh(user)
  return user
