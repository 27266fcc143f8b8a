from __future__ import annotations

import json
import logging

from google.cloud import tasks_v2
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues tasks to Google Cloud Tasks."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings
    self.client = tasks_v2.CloudTasksClient()

  def _build_task(self, job_id: str) -> dict:
    url = f"{self.settings.base_url.rstrip('/')}/internal/tasks/process-job"
    headers = {"Content-Type": "application/json"}
    if self.settings.task_secret:
      headers["X-Reelingo-Task-Secret"] = self.settings.task_secret
    http_request: dict = {"http_method": tasks_v2.HttpMethod.POST, "url": url, "headers": headers, "body": json.dumps({"job_id": job_id}).encode()}
    # Cloud Run invoker auth needs an OIDC token minted for a service account.
    if self.settings.cloud_run_invoker_service_account:
      http_request["oidc_token"] = {"service_account_email": self.settings.cloud_run_invoker_service_account}
    return {"http_request": http_request}

  async def enqueue(self, job_id: str, payload: dict) -> None:
    """Enqueue a job to Cloud Tasks."""
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured.")

    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured.")

    task = self._build_task(job_id)
    try:
      response = await run_in_threadpool(self.client.create_task, request={"parent": self.settings.cloud_tasks_queue_path, "task": task})
    except Exception as e:
      logger.error("Failed to enqueue task for job %s: %s", job_id, e, exc_info=True)
      raise
    logger.info("Enqueued task %s for job %s", response.name, job_id)
