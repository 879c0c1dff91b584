import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.api.deps import get_services
from app.api.models import HomeworkStatusResponse, HomeworkSubmitResponse
from app.core.security import get_current_user
from app.schema.sql import User
from app.services.container import ServiceContainer
from app.services.homework import InvalidHomeworkImageError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/homework/submit", response_model=HomeworkSubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_homework(
  homework_image: UploadFile | None = File(default=None, alias="homeworkImage"),  # noqa: B008
  current_user: User = Depends(get_current_user),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HomeworkSubmitResponse:
  """
  Accept a homework image and queue it for solving. Poll the status endpoint for the result.
  """
  if homework_image is None:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image file uploaded.")

  # Read one byte past the limit so oversized uploads are detected without buffering them whole.
  data = await homework_image.read(services.settings.max_homework_image_bytes + 1)
  try:
    job_id = await services.homework.submit(user=current_user, data=data, media_type=homework_image.content_type)
  except InvalidHomeworkImageError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

  return HomeworkSubmitResponse(message="Homework submission accepted.", job_id=job_id)


@router.get("/homework/status/{job_id}", response_model=HomeworkStatusResponse)
async def get_homework_status(
  job_id: str,
  current_user: User = Depends(get_current_user),  # noqa: B008
  services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HomeworkStatusResponse:
  record = await services.homework.get_status(user_id=current_user.id, job_id=job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found.")
  return HomeworkStatusResponse(status=record.status, solution=record.solution, failure_reason=record.failure_reason)
