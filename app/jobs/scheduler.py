"""In-process triggers for periodic background work: the daily cache warm and the stale-job sweep."""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime.datetime, run_hour_utc: int) -> float:
  """Return seconds from now until the next run_hour_utc:00 UTC, never zero."""
  if now.tzinfo is None:
    raise ValueError("now must be timezone-aware (UTC).")
  now_utc = now.astimezone(datetime.UTC)
  next_run = now_utc.replace(hour=run_hour_utc, minute=0, second=0, microsecond=0)
  if next_run <= now_utc:
    next_run += datetime.timedelta(days=1)
  return (next_run - now_utc).total_seconds()


class _BackgroundSchedule:
  """Own one asyncio task that sleeps and runs a job until stopped. Job errors are logged."""

  def __init__(self, job: Callable[[], Awaitable[Any]], *, name: str) -> None:
    self._job = job
    self._name = name
    self._task: asyncio.Task[None] | None = None

  def start(self) -> None:
    if self._task is not None:
      return
    self._task = asyncio.create_task(self._loop(), name=self._name)
    logger.info("Scheduled %s %s.", self._name, self._describe())

  async def stop(self) -> None:
    if self._task is None:
      return
    self._task.cancel()
    try:
      await self._task
    except asyncio.CancelledError:
      pass
    self._task = None

  async def run_once(self) -> None:
    try:
      await self._job()
    except Exception:
      logger.exception("Scheduled %s run failed", self._name)

  def _next_delay(self) -> float:
    raise NotImplementedError

  def _describe(self) -> str:
    raise NotImplementedError

  async def _loop(self) -> None:
    while True:
      delay = self._next_delay()
      logger.debug("Next %s run in %.0fs", self._name, delay)
      await asyncio.sleep(delay)
      await self.run_once()


class DailyScheduler(_BackgroundSchedule):
  """Run a coroutine once a day at a fixed UTC hour."""

  def __init__(self, job: Callable[[], Awaitable[Any]], *, run_hour_utc: int = 0, name: str = "daily-job", clock=None) -> None:
    super().__init__(job, name=name)
    self._run_hour_utc = run_hour_utc
    self._clock = clock or (lambda: datetime.datetime.now(datetime.UTC))

  def _next_delay(self) -> float:
    return seconds_until_next_run(self._clock(), self._run_hour_utc)

  def _describe(self) -> str:
    return f"daily at {self._run_hour_utc:02d}:00 UTC"


class IntervalScheduler(_BackgroundSchedule):
  """Run a coroutine every interval_seconds, first after one full interval."""

  def __init__(self, job: Callable[[], Awaitable[Any]], *, interval_seconds: float, name: str = "interval-job") -> None:
    if interval_seconds <= 0:
      raise ValueError("interval_seconds must be positive.")
    super().__init__(job, name=name)
    self.interval_seconds = interval_seconds

  def _next_delay(self) -> float:
    return self.interval_seconds

  def _describe(self) -> str:
    return f"every {self.interval_seconds:.0f}s"
