from __future__ import annotations

import logging

import httpx

from app.config import Settings
from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)


class LocalHttpEnqueuer(TaskEnqueuer):
  """Enqueues tasks via local HTTP requests to simulate Cloud Tasks.

  The request goes over the network even for localhost so the task endpoint can
  answer before its background work starts.
  """

  def __init__(self, settings: Settings) -> None:
    self.settings = settings

  def _build_client(self) -> httpx.AsyncClient:
    # Never trust environment proxy variables for internal task dispatch.
    return httpx.AsyncClient(trust_env=False)

  def _task_headers(self) -> dict[str, str]:
    """Build task authentication headers for internal endpoints."""
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    return {"authorization": f"Bearer {self.settings.task_secret}"}

  async def enqueue(self, job_id: str, payload: dict) -> None:
    """Enqueue a job by POSTing to the local endpoint."""
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured, strictly required for LocalHttpEnqueuer.")

    url = f"{self.settings.base_url.rstrip('/')}/internal/tasks/process-job"

    try:
      async with self._build_client() as client:
        logger.info("Dispatching task locally to %s", url)
        response = await client.post(url, json={"job_id": job_id}, headers=self._task_headers(), timeout=30.0)
        response.raise_for_status()

    except httpx.HTTPStatusError as e:
      logger.error("Local task dispatch returned %s for job %s: %s", e.response.status_code, job_id, e.response.text)
      raise
    except httpx.RequestError as e:
      logger.error("Failed to dispatch local task for job %s: %s", job_id, e)
      raise
