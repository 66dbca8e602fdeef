from __future__ import annotations

from schoolgen.config import Settings
from schoolgen.services.tasks.interface import TaskEnqueuer


def get_task_enqueuer(settings: Settings) -> TaskEnqueuer:
  """Factory to get the configured task enqueuer."""
  if settings.task_service_provider == "gcp":
    from schoolgen.services.tasks.gcp import CloudTasksEnqueuer

    return CloudTasksEnqueuer(settings)
  if settings.task_service_provider == "local-http":
    from schoolgen.services.tasks.local import LocalHttpEnqueuer

    return LocalHttpEnqueuer(settings)
  from schoolgen.services.tasks.inline import InlineEnqueuer

  return InlineEnqueuer(settings)
