"""Lesson questions and unit diagnostic tests."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.output import Quiz, parse_quiz_output
from app.ai.prompts import build_diagnostic_prompt, build_questions_prompt
from app.ai.providers.base import TextGenerator
from app.schema.sql import User
from app.services.curriculum import find_lesson, find_unit, list_curriculum_data
from app.services.quotas import QuotaLedger

logger = logging.getLogger(__name__)

QUIZ_MAX_OUTPUT_TOKENS = 2048
LESSON_QUESTION_COUNT = 3
DIAGNOSTIC_QUESTION_COUNT = 5


class QuizService:
  def __init__(self, *, ledger: QuotaLedger, generator: TextGenerator, questions_cost: int, diagnostic_cost: int, model: str | None = None) -> None:
    self._ledger = ledger
    self._generator = generator
    self._questions_cost = questions_cost
    self._diagnostic_cost = diagnostic_cost
    self._model = model

  async def _generate(self, prompt: str, expected_questions: int) -> Quiz:
    text = await self._generator.generate(prompt, max_output_tokens=QUIZ_MAX_OUTPUT_TOKENS, model=self._model)
    return parse_quiz_output(text, expected_questions=expected_questions)

  async def generate_questions(self, session: AsyncSession, *, user: User, lesson_id: str) -> Quiz:
    """Generate multiple-choice questions for one lesson."""
    await self._ledger.ensure_quota(user.id, self._questions_cost)
    lesson = find_lesson(await list_curriculum_data(session), lesson_id)

    prompt = build_questions_prompt(lesson_name=lesson.name, objectives=lesson.objectives, question_count=LESSON_QUESTION_COUNT)
    await session.commit()
    quiz = await self._generate(prompt, LESSON_QUESTION_COUNT)
    await self._ledger.reserve(user.id, self._questions_cost, action="lesson_questions")
    return quiz

  async def generate_diagnostic_test(self, session: AsyncSession, *, user: User, unit_id: str) -> Quiz:
    """Generate a diagnostic test covering every objective in a unit."""
    await self._ledger.ensure_quota(user.id, self._diagnostic_cost)
    unit = find_unit(await list_curriculum_data(session), unit_id)

    prompt = build_diagnostic_prompt(objectives=unit.objectives, question_count=DIAGNOSTIC_QUESTION_COUNT)
    await session.commit()
    quiz = await self._generate(prompt, DIAGNOSTIC_QUESTION_COUNT)
    await self._ledger.reserve(user.id, self._diagnostic_cost, action="diagnostic_test")
    logger.info("Generated diagnostic test unit_id=%s objectives=%d", unit_id, len(unit.objectives))
    return quiz
