"""App-level fixtures: a service container of in-memory parts and an ASGI client."""

from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import get_settings
from app.core.database import get_db
from app.core.security import get_current_user
from app.jobs.worker import HomeworkJobRunner
from app.main import app
from app.services.container import ServiceContainer
from app.services.content_cache import MemoryContentCache
from app.services.homework import HomeworkService
from app.services.lessons import LessonService
from app.services.popularity import MemoryPopularityTracker
from app.services.quizzes import QuizService
from app.services.tasks.queue import InProcessTaskQueue
from app.services.warmer import ProactiveWarmer

TASK_SECRET = "warm-secret"


def scripted_reply(prompt: str) -> str:
  """Answer each prompt kind with a well-formed payload."""
  if "homework" in prompt:
    return "1. Add 2 and 3.\n2. The answer is **5**."
  if "multiple-choice" in prompt:
    count = 5 if "diagnostic test" in prompt else 3
    questions = [{"questionText": f"Question {i}?", "options": ["A", "B", "C", "D"], "correctOptionIndex": 0} for i in range(count)]
    return json.dumps({"questions": questions})
  return json.dumps({"content": "Plants turn light into food.", "keywords": ["Chlorophyll"]})


@pytest.fixture
def settings():
  return replace(get_settings(), task_secret=TASK_SECRET, max_homework_image_bytes=1024, cost_lesson=10, cost_homework=15)


@pytest.fixture
def generator(generator_factory):
  return generator_factory(scripted_reply)


@pytest.fixture
def services(settings, ledger, jobs_repo, generator, session_context_factory) -> ServiceContainer:
  cache = MemoryContentCache()
  popularity = MemoryPopularityTracker()
  runner = HomeworkJobRunner(jobs_repo=jobs_repo, generator=generator, ledger=ledger, cost=settings.cost_homework)
  queue = InProcessTaskQueue(runner.process, concurrency=1)
  return ServiceContainer(
    settings=settings,
    cache=cache,
    popularity=popularity,
    generator=generator,
    ledger=ledger,
    jobs_repo=jobs_repo,
    runner=runner,
    queue=queue,
    lessons=LessonService(ledger=ledger, cache=cache, popularity=popularity, generator=generator, cost=settings.cost_lesson, cache_ttl_seconds=3600),
    quizzes=QuizService(ledger=ledger, generator=generator, questions_cost=settings.cost_questions, diagnostic_cost=settings.cost_diagnostic),
    homework=HomeworkService(jobs_repo=jobs_repo, enqueuer=queue, ledger=ledger, cost=settings.cost_homework, max_image_bytes=settings.max_homework_image_bytes),
    warmer=ProactiveWarmer(
      session_factory=lambda: session_context_factory(MagicMock()),
      cache=cache,
      popularity=popularity,
      generator=generator,
      top_n=2,
      ttl_seconds=settings.warm_cache_ttl_seconds,
    ),
  )


@pytest.fixture
def auth_state(make_user):
  """Mutable holder for the user the fake auth dependency returns."""
  return {"user": make_user()}


@pytest.fixture
async def client(services, settings, auth_state):
  async def fake_db():
    yield MagicMock(commit=AsyncMock())

  app.state.services = services
  app.dependency_overrides[get_current_user] = lambda: auth_state["user"]
  app.dependency_overrides[get_db] = fake_db
  app.dependency_overrides[get_settings] = lambda: settings
  services.start()
  try:
    async with AsyncClient(transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test") as async_client:
      yield async_client
  finally:
    await services.queue.stop(drain_timeout=5)
    app.dependency_overrides.clear()
    del app.state.services
