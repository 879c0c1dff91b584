from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.api.models import CurriculumCreateRequest
from app.services.curriculum import CurriculumItemNotFoundError, find_lesson, find_unit


def test_find_lesson_walks_nested_documents(curriculum_documents):
  lesson = find_lesson(curriculum_documents, "L2")

  assert lesson.name == "Respiration"
  assert lesson.objectives == ("Compare with photosynthesis",)


def test_find_lesson_searches_every_document(curriculum_documents):
  extra = {"subjects": [{"units": [{"unitId": "U7", "chapters": [{"lessons": [{"lessonId": "L9", "name": "Fractions", "objectives": []}]}]}]}]}

  assert find_lesson([*curriculum_documents, extra], "L9").name == "Fractions"


def test_find_unit_collects_objectives_in_order(curriculum_documents):
  unit = find_unit(curriculum_documents, "U1")

  assert [lesson.lesson_id for lesson in unit.lessons] == ["L1", "L2"]
  assert unit.objectives == ["Define photosynthesis", "Name its inputs", "Compare with photosynthesis"]


def test_missing_items_raise_not_found(curriculum_documents):
  with pytest.raises(CurriculumItemNotFoundError) as exc_info:
    find_lesson(curriculum_documents, "L404")
  assert str(exc_info.value) == "Lesson L404 not found in curriculum."
  assert exc_info.value.kind == "lesson"

  with pytest.raises(CurriculumItemNotFoundError):
    find_unit([], "U1")


def test_malformed_documents_are_ignored():
  documents = [{"subjects": "not-a-list"}, {"subjects": [{"units": [None, {"unitId": "U1", "chapters": [{"lessons": ["bad"]}]}]}]}]

  with pytest.raises(CurriculumItemNotFoundError):
    find_lesson(documents, "L1")
  assert find_unit(documents, "U1").lessons == ()


def test_curriculum_request_requires_subjects_list():
  request = CurriculumCreateRequest.model_validate({"countryCode": "EG", "data": {"subjects": []}})
  assert request.country_code == "EG"

  with pytest.raises(ValidationError):
    CurriculumCreateRequest.model_validate({"countryCode": "EG", "data": {"units": []}})
