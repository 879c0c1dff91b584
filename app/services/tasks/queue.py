"""In-process job queue drained by a fixed pool of asyncio worker tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

JobHandler = Callable[[str], Awaitable[None]]


class InProcessTaskQueue(TaskEnqueuer):
  """Hand job ids to background workers so request handlers return immediately."""

  def __init__(self, handler: JobHandler, *, concurrency: int = 2) -> None:
    if concurrency <= 0:
      raise ValueError("concurrency must be positive.")
    self._handler = handler
    self._concurrency = concurrency
    self._queue: asyncio.Queue[str] = asyncio.Queue()
    self._workers: list[asyncio.Task[None]] = []

  def start(self) -> None:
    if self._workers:
      return
    self._workers = [asyncio.create_task(self._worker_loop(index), name=f"homework-worker-{index}") for index in range(self._concurrency)]
    logger.info("Started %d homework workers.", self._concurrency)

  async def enqueue(self, job_id: str) -> None:
    await self._queue.put(job_id)
    logger.debug("Enqueued job %s (depth=%d)", job_id, self._queue.qsize())

  async def join(self) -> None:
    """Wait until every enqueued job has been handled."""
    await self._queue.join()

  async def stop(self, *, drain_timeout: float | None = 30.0) -> None:
    """Let queued jobs finish, then cancel the workers."""
    if not self._workers:
      return
    try:
      await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
    except TimeoutError:
      logger.warning("Job queue did not drain within %.0fs; %d jobs left pending.", drain_timeout, self._queue.qsize())

    for worker in self._workers:
      worker.cancel()
    await asyncio.gather(*self._workers, return_exceptions=True)
    self._workers = []
    logger.info("Homework workers stopped.")

  async def _worker_loop(self, index: int) -> None:
    while True:
      job_id = await self._queue.get()
      try:
        await self._handler(job_id)
      except Exception:
        # The handler records its own failures; this keeps the worker alive if it cannot.
        logger.exception("Worker %d crashed while handling job %s", index, job_id)
      finally:
        self._queue.task_done()
