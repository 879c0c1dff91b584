"""Background processor for submitted homework jobs."""

from __future__ import annotations

import datetime
import logging
import uuid

from app.ai.prompts import build_homework_prompt
from app.ai.providers.base import TextGenerator
from app.jobs.models import DEFAULT_FAILURE_REASON, TIMED_OUT_FAILURE_REASON
from app.services.quotas import QuotaLedger
from app.services.tasks.interface import TaskEnqueuer
from app.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)

HOMEWORK_MAX_OUTPUT_TOKENS = 2048
HOMEWORK_USAGE_ACTION = "homework_solution"


class HomeworkJobRunner:
  """Drive a claimed homework job to exactly one terminal state.

  Errors are recorded on the job row and never propagate to the caller.
  """

  def __init__(self, *, jobs_repo: JobsRepository, generator: TextGenerator, ledger: QuotaLedger, cost: int, model: str | None = None) -> None:
    self._jobs_repo = jobs_repo
    self._generator = generator
    self._ledger = ledger
    self._cost = cost
    self._model = model

  async def process(self, job_id: str) -> None:
    try:
      claimed = await self._jobs_repo.claim_job(job_id)
    except Exception:
      logger.exception("Failed to claim homework job %s", job_id)
      return

    if not claimed:
      logger.info("Skipping homework job %s: already claimed or finished.", job_id)
      return

    try:
      solution, user_id = await self._solve(job_id)
    except Exception as exc:
      logger.error("Homework job %s failed: %s", job_id, exc, exc_info=True)
      await self._record_failure(job_id, str(exc).strip() or DEFAULT_FAILURE_REASON)
      return

    try:
      completed = await self._jobs_repo.complete_job(job_id, solution=solution)
    except Exception as exc:
      logger.exception("Failed to store solution for homework job %s", job_id)
      await self._record_failure(job_id, str(exc).strip() or DEFAULT_FAILURE_REASON)
      return

    if not completed:
      logger.warning("Homework job %s left processing before completion; solution discarded.", job_id)
      return

    try:
      await self._ledger.reserve(user_id, self._cost, action=HOMEWORK_USAGE_ACTION)
    except Exception:
      # The job is already terminal; a missed charge must not change that.
      logger.exception("Failed to reserve quota for completed homework job %s", job_id)
      return
    logger.info("Homework job %s completed.", job_id)

  async def _solve(self, job_id: str) -> tuple[str, uuid.UUID]:
    record = await self._jobs_repo.get_job(job_id)
    if record is None:
      raise LookupError(f"Homework job {job_id} disappeared after it was claimed.")
    image = await self._jobs_repo.load_image(job_id)
    if image is None:
      raise ValueError("Homework image is missing.")

    prompt = build_homework_prompt(learning_style=record.learning_style)
    solution = await self._generator.generate(prompt, max_output_tokens=HOMEWORK_MAX_OUTPUT_TOKENS, image=image, model=self._model)
    return solution, record.user_id

  async def _record_failure(self, job_id: str, reason: str) -> None:
    try:
      await self._jobs_repo.fail_job(job_id, reason=reason)
    except Exception:
      logger.exception("Failed to mark homework job %s as failed", job_id)


async def fail_stale_jobs(jobs_repo: JobsRepository, *, visibility_timeout_seconds: int, now: datetime.datetime | None = None) -> int:
  """Fail jobs that have been processing longer than the visibility timeout.

  Runs at startup and periodically, so a job abandoned by a worker that was
  cancelled mid-flight is failed once its timeout passes. A runner that
  finishes after this point loses the compare-and-set and discards its result.
  """
  now = now or datetime.datetime.now(datetime.UTC)
  cutoff = now - datetime.timedelta(seconds=visibility_timeout_seconds)

  failed = 0
  for job_id in await jobs_repo.list_stale_processing(started_before=cutoff):
    if await jobs_repo.fail_job(job_id, reason=TIMED_OUT_FAILURE_REASON):
      failed += 1
  if failed:
    logger.warning("Failed %d homework jobs stuck in processing.", failed)
  return failed


async def recover_jobs(jobs_repo: JobsRepository, enqueuer: TaskEnqueuer, *, visibility_timeout_seconds: int, now: datetime.datetime | None = None) -> tuple[int, int]:
  """Fail jobs stuck in processing and re-enqueue jobs that were never claimed.

  Returns (failed, requeued).
  """
  failed = await fail_stale_jobs(jobs_repo, visibility_timeout_seconds=visibility_timeout_seconds, now=now)

  pending = await jobs_repo.list_pending()
  for job_id in pending:
    await enqueuer.enqueue(job_id)

  if failed or pending:
    logger.info("Job recovery: %d timed out, %d re-enqueued.", failed, len(pending))
  return failed, len(pending)
