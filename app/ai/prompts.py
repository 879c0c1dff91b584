"""Prompt templates for lesson, quiz and homework generation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

DEFAULT_PREFERENCES: dict[str, Any] = {"style": "simplified", "tutorPersona": {"name": "Professor Khalid", "gender": "male"}}

_LESSON_OUTPUT_CONTRACT = """Return ONLY a valid JSON object with this structure and nothing else:
{
  "content": "The full explanation in Markdown",
  "keywords": ["Most important term", "Another term"]
}"""

_QUIZ_OUTPUT_CONTRACT = """Return ONLY a valid JSON object with this structure and nothing else:
{
  "questions": [
    {
      "questionText": "Question text here",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "correctOptionIndex": 0
    }
  ]
}"""


def resolve_preferences(preferences: dict[str, Any] | None) -> tuple[str, str]:
  """Return (style, tutor name), falling back to the defaults for missing fields."""
  preferences = preferences or {}
  style = preferences.get("style") or DEFAULT_PREFERENCES["style"]
  persona = preferences.get("tutorPersona") or {}
  tutor_name = persona.get("name") or DEFAULT_PREFERENCES["tutorPersona"]["name"]
  return str(style), str(tutor_name)


def format_mastery_percent(mastery_score: float) -> str:
  percent = round(mastery_score * 100, 1)
  if percent.is_integer():
    return f"{int(percent)}%"
  return f"{percent}%"


def build_lesson_prompt(*, lesson_name: str, mastery_score: float, preferences: dict[str, Any] | None) -> str:
  """Build the lesson explanation prompt shared by requests and the cache warmer."""
  style, tutor_name = resolve_preferences(preferences)
  return (
    f"Role: You are an expert teacher named {tutor_name}.\n"
    f"Persona: Explain in a {style} style.\n"
    f"Context: The student has a current mastery level of {format_mastery_percent(mastery_score)} in this lesson.\n"
    f'Task: Provide a clear and comprehensive explanation for the lesson "{lesson_name}", '
    "then list the most important terms from the lesson.\n\n"
    f"{_LESSON_OUTPUT_CONTRACT}"
  )


def build_questions_prompt(*, lesson_name: str, objectives: Sequence[str], question_count: int = 3) -> str:
  return (
    f'Based on the lesson "{lesson_name}" with objectives "{", ".join(objectives)}", '
    f"generate {question_count} multiple-choice questions to test understanding at different difficulty levels.\n\n"
    "Each question has 4 options and the zero-based index of the correct option.\n\n"
    f"{_QUIZ_OUTPUT_CONTRACT}"
  )


def build_diagnostic_prompt(*, objectives: Sequence[str], question_count: int = 5) -> str:
  return (
    f"Create a diagnostic test with {question_count} multiple-choice questions covering these key objectives: "
    f"{', '.join(objectives)}.\n\n"
    "Each question has 4 options and the zero-based index of the correct option.\n\n"
    f"{_QUIZ_OUTPUT_CONTRACT}"
  )


def build_homework_prompt(*, learning_style: str) -> str:
  """Build the instruction that accompanies a homework image."""
  return (
    "You are an expert tutor. A student has sent a picture of their homework.\n"
    "Analyze the image and help the student.\n"
    "- If the image contains a question or problem, provide a clear, step-by-step solution.\n"
    "- If the image contains explanatory text, a diagram, or a concept, summarize and explain the main ideas clearly.\n"
    "- If you cannot understand the image, say so politely.\n"
    f"Explain everything in a {learning_style} style and format your response using simple Markdown."
  )
