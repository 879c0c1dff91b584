"""Curriculum storage and lesson/unit lookup.

Curriculum documents are nested ``subjects -> units -> chapters -> lessons``.
Lessons carry ``lessonId``, ``name`` and ``objectives``; units carry ``unitId``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.schema.sql import Curriculum
from app.utils.ids import generate_curriculum_id

logger = logging.getLogger(__name__)


class CurriculumItemNotFoundError(LookupError):
  """Raised when a lesson or unit id is not present in any curriculum."""

  def __init__(self, kind: str, item_id: str) -> None:
    super().__init__(f"{kind.capitalize()} {item_id} not found in curriculum.")
    self.kind = kind
    self.item_id = item_id


@dataclass(frozen=True)
class LessonDetails:
  lesson_id: str
  name: str
  objectives: tuple[str, ...]


@dataclass(frozen=True)
class UnitDetails:
  unit_id: str
  name: str
  lessons: tuple[LessonDetails, ...]

  @property
  def objectives(self) -> list[str]:
    return [objective for lesson in self.lessons for objective in lesson.objectives]


def _as_list(value: Any) -> list[dict[str, Any]]:
  if not isinstance(value, list):
    return []
  return [item for item in value if isinstance(item, dict)]


def _lesson_from_dict(lesson: dict[str, Any]) -> LessonDetails:
  objectives = lesson.get("objectives") or []
  return LessonDetails(lesson_id=str(lesson.get("lessonId")), name=str(lesson.get("name") or ""), objectives=tuple(str(item) for item in objectives))


def _iter_units(documents: Iterable[dict[str, Any]]) -> Iterator[dict[str, Any]]:
  for document in documents:
    for subject in _as_list(document.get("subjects")):
      yield from _as_list(subject.get("units"))


def _unit_lessons(unit: dict[str, Any]) -> Iterator[dict[str, Any]]:
  for chapter in _as_list(unit.get("chapters")):
    yield from _as_list(chapter.get("lessons"))


def find_lesson(documents: Iterable[dict[str, Any]], lesson_id: str) -> LessonDetails:
  """Return the first lesson with the given id or raise CurriculumItemNotFoundError."""
  for unit in _iter_units(documents):
    for lesson in _unit_lessons(unit):
      if str(lesson.get("lessonId")) == lesson_id:
        return _lesson_from_dict(lesson)
  raise CurriculumItemNotFoundError("lesson", lesson_id)


def find_unit(documents: Iterable[dict[str, Any]], unit_id: str) -> UnitDetails:
  """Return the first unit with the given id or raise CurriculumItemNotFoundError."""
  for unit in _iter_units(documents):
    if str(unit.get("unitId")) == unit_id:
      lessons = tuple(_lesson_from_dict(lesson) for lesson in _unit_lessons(unit))
      return UnitDetails(unit_id=unit_id, name=str(unit.get("name") or ""), lessons=lessons)
  raise CurriculumItemNotFoundError("unit", unit_id)


async def create_curriculum(session: AsyncSession, *, country_code: str, data: dict[str, Any]) -> Curriculum:
  curriculum = Curriculum(id=generate_curriculum_id(), country_code=country_code, data=data)
  session.add(curriculum)
  await session.commit()
  logger.info("Created curriculum %s for country %s", curriculum.id, country_code)
  return curriculum


async def list_curriculums(session: AsyncSession) -> list[Curriculum]:
  result = await session.execute(select(Curriculum).order_by(Curriculum.created_at))
  return list(result.scalars().all())


async def list_curriculum_data(session: AsyncSession) -> list[dict[str, Any]]:
  """Return the raw curriculum documents used for lesson and unit lookup."""
  result = await session.execute(select(Curriculum.data).order_by(Curriculum.created_at))
  return [row for row in result.scalars().all() if isinstance(row, dict)]
