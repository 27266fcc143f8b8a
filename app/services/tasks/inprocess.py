from __future__ import annotations

import asyncio
import logging

from app.services.tasks.interface import JobHandler, TaskEnqueuer

logger = logging.getLogger(__name__)


class InProcessEnqueuer(TaskEnqueuer):
  """Runs jobs as asyncio tasks on the current event loop."""

  def __init__(self, handler: JobHandler) -> None:
    self._handler = handler
    # Strong references so running tasks are not garbage collected.
    self._tasks: set[asyncio.Task[None]] = set()

  @property
  def pending(self) -> int:
    return len(self._tasks)

  async def enqueue(self, job_id: str, payload: dict) -> None:
    """Schedule the job and return without waiting for it."""
    task = asyncio.create_task(self._handler(job_id), name=f"generation-job-{job_id}")
    self._tasks.add(task)
    task.add_done_callback(self._on_done)
    logger.info("Scheduled job %s in-process", job_id)

  async def drain(self, timeout: float | None = None) -> None:
    """Wait for scheduled jobs, cancelling any still running after the timeout."""
    if not self._tasks:
      return
    tasks = list(self._tasks)
    _, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
      task.cancel()
    if pending:
      logger.warning("Cancelled %d in-process jobs on shutdown", len(pending))
      await asyncio.gather(*pending, return_exceptions=True)

  def _on_done(self, task: asyncio.Task[None]) -> None:
    self._tasks.discard(task)
    if task.cancelled():
      return
    exc = task.exception()
    if exc is not None:
      logger.error("In-process job task failed: %s", exc, exc_info=exc)
