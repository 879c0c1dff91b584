from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.models import CurriculumCreateRequest, CurriculumResponse
from app.core.database import get_db
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.curriculum import create_curriculum, list_curriculums

router = APIRouter()


@router.post("/curriculums", response_model=CurriculumResponse, status_code=status.HTTP_201_CREATED)
async def add_curriculum(payload: CurriculumCreateRequest, _current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> CurriculumResponse:  # noqa: B008
  curriculum = await create_curriculum(db, country_code=payload.country_code, data=payload.data)
  return CurriculumResponse(id=curriculum.id, country_code=curriculum.country_code, data=curriculum.data)


@router.get("/curriculums", response_model=list[CurriculumResponse])
async def get_curriculums(_current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[CurriculumResponse]:  # noqa: B008
  curriculums = await list_curriculums(db)
  return [CurriculumResponse(id=item.id, country_code=item.country_code, data=item.data) for item in curriculums]
