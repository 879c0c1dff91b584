from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator

from app.jobs.models import JobStatus


class PreferencesUpdateRequest(BaseModel):
  """Partial update of learning preferences; omitted fields keep their value."""

  model_config = ConfigDict(populate_by_name=True, extra="forbid")

  style: str | None = Field(default=None, min_length=1, max_length=64)
  tutor_name: str | None = Field(default=None, alias="tutorName", min_length=1, max_length=64)

  @model_validator(mode="after")
  def _require_one_field(self) -> PreferencesUpdateRequest:
    if self.style is None and self.tutor_name is None:
      raise ValueError("Provide at least one of style or tutorName.")
    return self


class QuotaResponse(BaseModel):
  used: int
  limit: int
  remaining: int


class UserProfileResponse(BaseModel):
  id: str
  email: str
  preferences: dict[str, Any]
  quota: QuotaResponse


class CurriculumCreateRequest(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  country_code: str = Field(alias="countryCode", min_length=2, max_length=8)
  data: dict[str, Any]

  @model_validator(mode="after")
  def _require_subjects(self) -> CurriculumCreateRequest:
    if not isinstance(self.data.get("subjects"), list):
      raise ValueError("Curriculum data must contain a subjects list.")
    return self


class CurriculumResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  id: str
  country_code: str = Field(alias="countryCode")
  data: dict[str, Any]


class SkillUpdateRequest(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  score: StrictInt = Field(ge=0)
  total_questions: StrictInt = Field(alias="totalQuestions", ge=0)

  @model_validator(mode="after")
  def _score_within_total(self) -> SkillUpdateRequest:
    if self.total_questions > 0 and self.score > self.total_questions:
      raise ValueError("score must not exceed totalQuestions.")
    return self


class SkillResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  lesson_id: str = Field(alias="lessonId")
  mastery_score: float = Field(alias="masteryScore")
  confidence: str
  last_attempt: str | None = Field(default=None, alias="lastAttempt")


class SkillUpdateResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  message: str
  skill: SkillResponse


class HomeworkSubmitResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  message: str
  job_id: str = Field(alias="jobId")


class HomeworkStatusResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  status: JobStatus
  solution: str | None = None
  failure_reason: str | None = Field(default=None, alias="failureReason")
