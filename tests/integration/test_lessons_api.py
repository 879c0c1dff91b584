from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.ai.errors import ProviderError
from app.schema.sql import ConfidenceTier
from app.services.skills import SkillUpdate

INSUFFICIENT_QUOTA = "Insufficient quota. Please upgrade your plan."


@pytest.fixture
def skill_records():
  return {}


@pytest.fixture(autouse=True)
def patch_lookups(curriculum_documents, skill_records):
  async def fake_skill_record(session, user_id, lesson_id):
    return skill_records.get(user_id)

  with (
    patch("app.services.lessons.list_curriculum_data", AsyncMock(return_value=curriculum_documents)),
    patch("app.services.quizzes.list_curriculum_data", AsyncMock(return_value=curriculum_documents)),
    patch("app.services.warmer.list_curriculum_data", AsyncMock(return_value=curriculum_documents)),
    patch("app.services.lessons.get_skill_record", side_effect=fake_skill_record),
  ):
    yield


@pytest.mark.anyio
async def test_health(client):
  response = await client.get("/health")

  assert response.status_code == 200
  assert response.json() == {"status": "ok", "version": "0.1.0"}
  assert response.headers["x-content-type-options"] == "nosniff"
  assert "x-request-id" in response.headers


@pytest.mark.anyio
async def test_request_id_is_echoed_or_generated(client):
  echoed = await client.get("/health", headers={"x-request-id": "trace-0001"})
  replaced = await client.get("/health", headers={"x-request-id": "bad id\twith spaces"})

  assert echoed.headers["x-request-id"] == "trace-0001"
  assert replaced.headers["x-request-id"] != "bad id\twith spaces"


@pytest.mark.anyio
async def test_error_responses_carry_request_id(client):
  response = await client.post("/api/lessons/nope/generate", headers={"x-request-id": "trace-0002"})

  assert response.json()["requestId"] == "trace-0002"


@pytest.mark.anyio
async def test_unhandled_error_response_carries_request_id_header(client, services):
  services.lessons.generate_lesson_content = AsyncMock(side_effect=RuntimeError("database exploded"))

  response = await client.post("/api/lessons/L1/generate", headers={"x-request-id": "trace-0003"})

  assert response.status_code == 500
  assert response.json() == {"detail": "Internal Server Error", "requestId": "trace-0003"}
  assert response.headers["x-request-id"] == "trace-0003"


@pytest.mark.anyio
async def test_generate_lesson_returns_content_and_charges(client, quota_store, auth_state):
  response = await client.post("/api/lessons/L1/generate")

  assert response.status_code == 200
  assert response.json() == {"content": "Plants turn light into food.", "keywords": ["Chlorophyll"]}
  assert quota_store.used(auth_state["user"].id) == 10


@pytest.mark.anyio
async def test_same_tier_users_share_one_generation(client, generator, quota_store, auth_state, make_user):
  first = auth_state["user"]
  first_response = await client.post("/api/lessons/L1/generate")

  second = make_user()
  auth_state["user"] = second
  second_response = await client.post("/api/lessons/L1/generate")

  assert second_response.json() == first_response.json()
  assert len(generator.calls) == 1
  assert quota_store.used(first.id) == 10
  assert quota_store.used(second.id) == 0


@pytest.mark.anyio
async def test_quota_exhausted_returns_402(client, generator, auth_state, make_user):
  auth_state["user"] = make_user(used=995, limit=1000)

  response = await client.post("/api/lessons/L1/generate")

  assert response.status_code == 402
  assert response.json()["detail"] == INSUFFICIENT_QUOTA
  assert generator.calls == []


@pytest.mark.anyio
async def test_unknown_lesson_returns_404(client):
  response = await client.post("/api/lessons/nope/generate")

  assert response.status_code == 404
  assert response.json()["detail"] == "Lesson nope not found in curriculum."


@pytest.mark.anyio
async def test_provider_failure_returns_generic_500(client, generator, quota_store, auth_state):
  generator.error = ProviderError("prompt leaked in upstream error")

  response = await client.post("/api/lessons/L1/generate")

  assert response.status_code == 500
  assert response.json()["detail"] == "Failed to generate content."
  assert quota_store.used(auth_state["user"].id) == 0


@pytest.mark.anyio
async def test_questions_and_diagnostic_test(client, quota_store, auth_state):
  questions = await client.post("/api/lessons/L1/questions")
  diagnostic = await client.post("/api/units/U1/diagnostic-test")

  assert questions.status_code == 200
  assert len(questions.json()["questions"]) == 3
  assert set(questions.json()["questions"][0]) == {"questionText", "options", "correctOptionIndex"}
  assert diagnostic.status_code == 200
  assert len(diagnostic.json()["questions"]) == 5
  assert quota_store.used(auth_state["user"].id) == 10


@pytest.mark.anyio
async def test_update_skill(client, services):
  result = SkillUpdate(lesson_id="L1", mastery_score=0.7, confidence=ConfidenceTier.HIGH, previous_confidence=ConfidenceTier.MEDIUM)

  with patch("app.api.routes.lessons.update_skill", AsyncMock(return_value=result)) as update_skill:
    response = await client.post("/api/lessons/L1/update-skill", json={"score": 7, "totalQuestions": 10})

  assert response.status_code == 200
  body = response.json()
  assert body["message"] == "Skill profile updated successfully."
  assert body["skill"]["lessonId"] == "L1"
  assert body["skill"]["masteryScore"] == 0.7
  assert body["skill"]["confidence"] == "high"
  assert update_skill.await_args.kwargs["cache"] is services.cache


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [{"score": 11, "totalQuestions": 10}, {"score": -1, "totalQuestions": 10}, {"score": "7", "totalQuestions": 10}, {"score": 1}])
async def test_update_skill_rejects_invalid_payload(client, payload):
  response = await client.post("/api/lessons/L1/update-skill", json=payload)

  assert response.status_code == 422


@pytest.mark.anyio
async def test_quota_endpoint_reads_ledger(client, auth_state, make_user):
  auth_state["user"] = make_user(used=40, limit=100)

  response = await client.get("/api/user/quota")

  assert response.json() == {"used": 40, "limit": 100, "remaining": 60}


@pytest.mark.anyio
async def test_warm_cache_requires_task_secret(client):
  assert (await client.post("/internal/tasks/warm-cache")).status_code == 403
  assert (await client.post("/internal/tasks/warm-cache", headers={"x-aischool-task-secret": "wrong"})).status_code == 403


@pytest.mark.anyio
async def test_warm_cache_runs_sweep_in_background(client, services, generator):
  await services.popularity.increment("L1")

  response = await client.post("/internal/tasks/warm-cache", headers={"authorization": "Bearer warm-secret"})

  assert response.status_code == 202
  assert response.json() == {"status": "accepted"}
  assert len(generator.calls) == 3
  for tier in ConfidenceTier:
    assert await services.cache.get(f"L1:{tier.value}") is not None


@pytest.mark.anyio
async def test_skill_record_tier_selects_cached_entry(client, services, skill_records, auth_state, generator):
  skill_records[auth_state["user"].id] = SimpleNamespace(mastery_score=0.8, confidence=ConfidenceTier.HIGH)

  await client.post("/api/lessons/L2/generate")

  assert await services.cache.get("L2:high") is not None
  assert await services.cache.get("L2:low") is None
  assert "80%" in generator.calls[0]["prompt"]
