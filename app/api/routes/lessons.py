import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from app.api.deps import get_services
from app.api.models import SkillResponse, SkillUpdateRequest, SkillUpdateResponse
from app.api.msgspec_utils import encode_msgspec_response
from app.core.database import get_db
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.container import ServiceContainer
from app.services.skills import update_skill

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/lessons/{lesson_id}/generate")
async def generate_lesson(
  lesson_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> Response:
  """
  Return lesson content for the caller's confidence tier, generating it on a cache miss.
  """
  content = await services.lessons.generate_lesson_content(db, user=current_user, lesson_id=lesson_id)
  return encode_msgspec_response(content)


@router.post("/lessons/{lesson_id}/questions")
async def generate_lesson_questions(
  lesson_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> Response:
  quiz = await services.quizzes.generate_questions(db, user=current_user, lesson_id=lesson_id)
  return encode_msgspec_response(quiz)


@router.post("/units/{unit_id}/diagnostic-test")
async def generate_diagnostic_test(
  unit_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> Response:
  quiz = await services.quizzes.generate_diagnostic_test(db, user=current_user, unit_id=unit_id)
  return encode_msgspec_response(quiz)


@router.post("/lessons/{lesson_id}/update-skill", response_model=SkillUpdateResponse)
async def update_lesson_skill(
  lesson_id: str,
  payload: SkillUpdateRequest,
  current_user: User = Depends(get_current_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> SkillUpdateResponse:
  """
  Record a quiz result and recompute the caller's mastery for the lesson.
  """
  try:
    update = await update_skill(db, user_id=current_user.id, lesson_id=lesson_id, score=payload.score, total_questions=payload.total_questions, cache=services.cache)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

  skill = SkillResponse(lesson_id=lesson_id, mastery_score=update.mastery_score, confidence=update.confidence.value)
  return SkillUpdateResponse(message="Skill profile updated successfully.", skill=skill)
