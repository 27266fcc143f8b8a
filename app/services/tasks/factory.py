from __future__ import annotations

from app.config import Settings
from app.services.tasks.interface import JobHandler, TaskEnqueuer


def get_task_enqueuer(settings: Settings, handler: JobHandler | None = None) -> TaskEnqueuer:
  """Factory to get the configured task enqueuer.

  ``handler`` runs the job when the in-process provider is selected; the HTTP and
  Cloud Tasks providers reach it through the internal task endpoint instead.
  """
  if settings.task_service_provider == "gcp":
    from app.services.tasks.gcp import CloudTasksEnqueuer

    return CloudTasksEnqueuer(settings)
  if settings.task_service_provider == "local-http":
    from app.services.tasks.local import LocalHttpEnqueuer

    return LocalHttpEnqueuer(settings)

  if handler is None:
    raise ValueError("The inline task provider needs a job handler.")
  from app.services.tasks.inprocess import InProcessEnqueuer

  return InProcessEnqueuer(handler)
