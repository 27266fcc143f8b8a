from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

JobHandler = Callable[[str], Awaitable[None]]


class TaskEnqueuer(Protocol):
  """Interface for handing a generation job to a detached worker."""

  async def enqueue(self, job_id: str, payload: dict) -> None:
    """Enqueue a job for processing."""
    ...
