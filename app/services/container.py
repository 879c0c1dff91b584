"""Process-wide services assembled at startup and shared by request handlers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai.providers.base import TextGenerator
from app.ai.providers.gemini import GeminiGenerator
from app.config import Settings
from app.jobs.scheduler import DailyScheduler, IntervalScheduler
from app.jobs.worker import HomeworkJobRunner, fail_stale_jobs
from app.services.content_cache import ContentCache, build_content_cache
from app.services.homework import HomeworkService
from app.services.lessons import LessonService
from app.services.popularity import PopularityTracker, build_popularity_tracker
from app.services.quizzes import QuizService
from app.services.quotas import QuotaLedger, SqlQuotaStore
from app.services.redis_client import close_redis, connect_redis
from app.services.tasks.factory import get_task_enqueuer
from app.services.tasks.queue import InProcessTaskQueue
from app.services.warmer import ProactiveWarmer, WarmReport
from app.storage.jobs_repo import JobsRepository
from app.storage.postgres_jobs_repo import PostgresJobsRepository

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
  settings: Settings
  cache: ContentCache
  popularity: PopularityTracker
  generator: TextGenerator
  ledger: QuotaLedger
  jobs_repo: JobsRepository
  runner: HomeworkJobRunner
  queue: InProcessTaskQueue
  lessons: LessonService
  quizzes: QuizService
  homework: HomeworkService
  warmer: ProactiveWarmer
  scheduler: DailyScheduler | None = None
  job_sweeper: IntervalScheduler | None = None
  redis: aioredis.Redis | None = None
  _warm_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

  async def run_warmer(self) -> WarmReport | None:
    """Run one warm sweep unless another is already in progress."""
    if self._warm_lock.locked():
      logger.info("Cache warm already running; skipping this trigger.")
      return None
    async with self._warm_lock:
      return await self.warmer.run()

  async def sweep_stale_jobs(self) -> int:
    return await fail_stale_jobs(self.jobs_repo, visibility_timeout_seconds=self.settings.job_visibility_timeout_seconds)

  def start(self) -> None:
    self.queue.start()
    if self.scheduler is not None:
      self.scheduler.start()
    if self.job_sweeper is not None:
      self.job_sweeper.start()

  async def close(self) -> None:
    if self.job_sweeper is not None:
      await self.job_sweeper.stop()
    if self.scheduler is not None:
      await self.scheduler.stop()
    await self.queue.stop()
    await close_redis(self.redis)


async def build_container(settings: Settings, session_factory: async_sessionmaker[AsyncSession], *, generator: TextGenerator | None = None) -> ServiceContainer:
  """Wire services in dependency order. Workers and the scheduler start separately."""
  redis_client = await connect_redis(settings.redis_url, timeout_seconds=settings.redis_timeout_seconds) if settings.cache_backend == "redis" else None
  cache = build_content_cache(settings.cache_backend, redis_client)
  popularity = build_popularity_tracker(settings.cache_backend, redis_client)

  if generator is None:
    if not settings.gemini_api_key:
      raise RuntimeError("GEMINI_API_KEY must be set to generate content.")
    generator = GeminiGenerator(settings.gemini_api_key, default_model=settings.quiz_model)

  ledger = QuotaLedger(SqlQuotaStore(session_factory))
  jobs_repo = PostgresJobsRepository(session_factory)
  runner = HomeworkJobRunner(jobs_repo=jobs_repo, generator=generator, ledger=ledger, cost=settings.cost_homework, model=settings.content_model)
  queue = get_task_enqueuer(settings, runner.process)

  warmer = ProactiveWarmer(
    session_factory=session_factory,
    cache=cache,
    popularity=popularity,
    generator=generator,
    top_n=settings.warmer_top_n,
    ttl_seconds=settings.warm_cache_ttl_seconds,
    reset_counts=settings.warmer_reset_counts,
    model=settings.content_model,
  )

  container = ServiceContainer(
    settings=settings,
    cache=cache,
    popularity=popularity,
    generator=generator,
    ledger=ledger,
    jobs_repo=jobs_repo,
    runner=runner,
    queue=queue,
    lessons=LessonService(
      ledger=ledger,
      cache=cache,
      popularity=popularity,
      generator=generator,
      cost=settings.cost_lesson,
      cache_ttl_seconds=settings.lesson_cache_ttl_seconds,
      model=settings.content_model,
    ),
    quizzes=QuizService(ledger=ledger, generator=generator, questions_cost=settings.cost_questions, diagnostic_cost=settings.cost_diagnostic, model=settings.quiz_model),
    homework=HomeworkService(jobs_repo=jobs_repo, enqueuer=queue, ledger=ledger, cost=settings.cost_homework, max_image_bytes=settings.max_homework_image_bytes),
    warmer=warmer,
    redis=redis_client,
  )
  if settings.warmer_enabled:
    container.scheduler = DailyScheduler(container.run_warmer, run_hour_utc=settings.warmer_run_hour_utc, name="cache-warmer")
  # Half the timeout bounds how long past its deadline a stuck job can stay processing.
  container.job_sweeper = IntervalScheduler(container.sweep_stale_jobs, interval_seconds=settings.job_visibility_timeout_seconds / 2, name="stale-job-sweep")
  return container
