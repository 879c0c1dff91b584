from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services
from app.api.models import PreferencesUpdateRequest, QuotaResponse, UserProfileResponse
from app.core.database import get_db
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.container import ServiceContainer
from app.services.users import update_preferences

router = APIRouter()


def _quota_from_user(user: User) -> QuotaResponse:
  used = int(user.quota_used)
  limit = int(user.quota_limit)
  return QuotaResponse(used=used, limit=limit, remaining=max(limit - used, 0))


@router.get("/user/me", response_model=UserProfileResponse)
async def get_my_profile(current_user: User = Depends(get_current_user)) -> UserProfileResponse:  # noqa: B008
  """
  Get the current user's profile, preferences and quota usage.
  """
  return UserProfileResponse(id=str(current_user.id), email=current_user.email, preferences=current_user.preferences or {}, quota=_quota_from_user(current_user))


@router.put("/preferences", response_model=UserProfileResponse)
async def update_my_preferences(payload: PreferencesUpdateRequest, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> UserProfileResponse:  # noqa: B008
  user = await update_preferences(db, user=current_user, style=payload.style, tutor_name=payload.tutor_name)
  return UserProfileResponse(id=str(user.id), email=user.email, preferences=user.preferences or {}, quota=_quota_from_user(user))


@router.get("/user/quota", response_model=QuotaResponse)
async def get_my_quota(current_user: User = Depends(get_current_user), services: ServiceContainer = Depends(get_services)) -> QuotaResponse:  # noqa: B008
  """
  Get the current user's quota from the ledger.
  """
  snapshot = await services.ledger.snapshot(current_user.id)
  return QuotaResponse(used=snapshot.used, limit=snapshot.limit, remaining=snapshot.remaining)
