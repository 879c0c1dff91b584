from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.models import SkillResponse
from app.core.database import get_db
from app.core.security import get_current_user
from app.schema.sql import ConfidenceTier, User
from app.services.skills import list_skill_profile

router = APIRouter()


@router.get("/skills", response_model=list[SkillResponse])
async def get_skill_profile(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[SkillResponse]:  # noqa: B008
  records = await list_skill_profile(db, current_user.id)
  return [
    SkillResponse(
      lesson_id=record.lesson_id,
      mastery_score=record.mastery_score,
      confidence=ConfidenceTier(record.confidence).value,
      last_attempt=record.last_attempt.isoformat() if record.last_attempt else None,
    )
    for record in records
  ]
