"""Strict decoding of generated payloads.

Generated text must be a single JSON object matching the requested shape. A
surrounding markdown code fence is tolerated and removed; any other deviation
raises ``MalformedOutputError`` instead of being repaired.
"""

from __future__ import annotations

import re
from typing import Annotated, TypeVar

import msgspec

from app.ai.errors import MalformedOutputError

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n(?P<body>.*)\n\s*```$", re.DOTALL)

T = TypeVar("T")

NonEmptyStr = Annotated[str, msgspec.Meta(min_length=1)]


class LessonContent(msgspec.Struct, frozen=True):
  """Explanation text plus the key terms it covers."""

  content: NonEmptyStr
  keywords: list[str]


class QuizQuestion(msgspec.Struct, frozen=True, rename="camel"):
  question_text: NonEmptyStr
  options: Annotated[list[str], msgspec.Meta(min_length=2)]
  correct_option_index: Annotated[int, msgspec.Meta(ge=0)]


class Quiz(msgspec.Struct, frozen=True):
  questions: Annotated[list[QuizQuestion], msgspec.Meta(min_length=1)]


def strip_code_fence(text: str) -> str:
  """Remove a single markdown code fence wrapping the whole payload."""
  stripped = text.strip()
  match = _FENCE_PATTERN.match(stripped)
  if match:
    return match.group("body").strip()
  return stripped


def _decode(text: str, struct_type: type[T], label: str) -> T:
  payload = strip_code_fence(text)
  if not payload.startswith("{"):
    raise MalformedOutputError(f"{label} output is not a JSON object.", raw=text)
  try:
    return msgspec.json.decode(payload, type=struct_type)
  except (msgspec.DecodeError, msgspec.ValidationError) as exc:
    raise MalformedOutputError(f"{label} output failed validation: {exc}", raw=text) from exc


def parse_lesson_output(text: str) -> LessonContent:
  """Decode a lesson payload of the form {"content": str, "keywords": [str]}."""
  lesson = _decode(text, LessonContent, "Lesson")
  keywords = [keyword.strip() for keyword in lesson.keywords if keyword.strip()]
  return LessonContent(content=lesson.content.strip(), keywords=keywords)


def parse_quiz_output(text: str, *, expected_questions: int | None = None) -> Quiz:
  """Decode a quiz payload and check answer indexes against the option lists."""
  quiz = _decode(text, Quiz, "Quiz")
  if expected_questions is not None and len(quiz.questions) != expected_questions:
    raise MalformedOutputError(f"Quiz output has {len(quiz.questions)} questions, expected {expected_questions}.", raw=text)

  for index, question in enumerate(quiz.questions):
    if question.correct_option_index >= len(question.options):
      raise MalformedOutputError(f"Quiz question {index} points at a missing option.", raw=text)
  return quiz
