from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.ai.errors import MalformedOutputError, ProviderError
from app.services.curriculum import CurriculumItemNotFoundError
from app.services.quizzes import QuizService


def _session() -> MagicMock:
  return MagicMock(commit=AsyncMock())


def _quiz_reply(count: int) -> str:
  return json.dumps({"questions": [{"questionText": f"Q{i}?", "options": ["A", "B", "C", "D"], "correctOptionIndex": 1} for i in range(count)]})


@pytest.fixture(autouse=True)
def patch_curriculum(curriculum_documents):
  with patch("app.services.quizzes.list_curriculum_data", AsyncMock(return_value=curriculum_documents)):
    yield


def _service(ledger, generator) -> QuizService:
  return QuizService(ledger=ledger, generator=generator, questions_cost=5, diagnostic_cost=15)


@pytest.mark.anyio
async def test_generate_questions_charges_after_success(ledger, generator_factory, quota_store, make_user):
  generator = generator_factory(_quiz_reply(3))
  user = make_user()

  quiz = await _service(ledger, generator).generate_questions(_session(), user=user, lesson_id="L1")

  assert len(quiz.questions) == 3
  assert quota_store.log == [(user.id, "lesson_questions", 5)]
  assert 'lesson "Photosynthesis"' in generator.calls[0]["prompt"]
  assert "Define photosynthesis, Name its inputs" in generator.calls[0]["prompt"]


@pytest.mark.anyio
async def test_diagnostic_test_covers_all_unit_objectives(ledger, generator_factory, quota_store, make_user):
  generator = generator_factory(_quiz_reply(5))
  user = make_user()

  quiz = await _service(ledger, generator).generate_diagnostic_test(_session(), user=user, unit_id="U1")

  assert len(quiz.questions) == 5
  assert quota_store.used(user.id) == 15
  assert "Define photosynthesis, Name its inputs, Compare with photosynthesis" in generator.calls[0]["prompt"]


@pytest.mark.anyio
async def test_wrong_question_count_is_not_charged(ledger, generator_factory, quota_store, make_user):
  user = make_user()

  with pytest.raises(MalformedOutputError):
    await _service(ledger, generator_factory(_quiz_reply(2))).generate_questions(_session(), user=user, lesson_id="L1")

  assert quota_store.used(user.id) == 0


@pytest.mark.anyio
async def test_provider_failure_is_not_charged(ledger, generator_factory, quota_store, make_user):
  user = make_user()
  generator = generator_factory(error=ProviderError("upstream unavailable"))

  with pytest.raises(ProviderError):
    await _service(ledger, generator).generate_diagnostic_test(_session(), user=user, unit_id="U2")

  assert quota_store.used(user.id) == 0


@pytest.mark.anyio
async def test_unknown_unit_raises_not_found(ledger, generator_factory, make_user):
  generator = generator_factory(_quiz_reply(5))

  with pytest.raises(CurriculumItemNotFoundError) as exc_info:
    await _service(ledger, generator).generate_diagnostic_test(_session(), user=make_user(), unit_id="U9")

  assert str(exc_info.value) == "Unit U9 not found in curriculum."
  assert generator.calls == []


@pytest.mark.anyio
async def test_read_transaction_ends_before_generation(ledger, generator_factory, make_user):
  session = _session()
  commits_seen_by_generator = []

  def reply(prompt: str) -> str:
    commits_seen_by_generator.append(session.commit.await_count)
    return _quiz_reply(3)

  await _service(ledger, generator_factory(reply)).generate_questions(session, user=make_user(), lesson_id="L1")

  assert commits_seen_by_generator == [1]
