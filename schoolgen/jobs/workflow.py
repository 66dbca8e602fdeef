"""Checkpointed step runner with run-level retries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from schoolgen.core.exceptions import sanitize_error_message
from schoolgen.jobs.errors import StepTimeoutError
from schoolgen.jobs.models import TERMINAL_STATUSES, JobStatus, WorkflowStep
from schoolgen.schema.school import GenerationRequest
from schoolgen.storage.jobs_repo import JobStore

logger = logging.getLogger(__name__)


@dataclass
class WorkflowContext:
  """State shared by the steps of one run; ``results`` holds checkpointed step output."""

  job_id: str
  request: GenerationRequest
  results: dict[WorkflowStep, Any] = field(default_factory=dict)

  def result_of(self, step: WorkflowStep) -> Any:
    if step not in self.results:
      raise KeyError(f"Step '{step.value}' has not completed for job {self.job_id}")
    return self.results[step]


StepHandler = Callable[[WorkflowContext], Awaitable[Any]]


@dataclass(frozen=True)
class StepDefinition:
  step: WorkflowStep
  handler: StepHandler


class Workflow:
  """Run ordered steps at least once each, resuming from the step log.

  Before a step runs its checkpoint is consulted; a stored result is reused and
  the step is skipped. A fresh result is checkpointed before the next step starts,
  so every step must tolerate being re-run after a crash between its side effects
  and its checkpoint. A failing attempt restarts the run from the first
  unfinished step. After ``max_retries`` extra attempts the job is marked failed
  exactly once; terminal statuses are never overwritten.
  """

  def __init__(self, jobs: JobStore, steps: Sequence[StepDefinition], *, max_retries: int, retry_delay_seconds: float, step_timeout_seconds: float) -> None:
    self._jobs = jobs
    self._steps = list(steps)
    self._max_retries = max_retries
    self._retry_delay_seconds = retry_delay_seconds
    self._step_timeout_seconds = step_timeout_seconds

  async def run(self, context: WorkflowContext) -> bool:
    """Return True when the run completed, False when it ended failed or was already terminal."""
    status = await self._jobs.get_status(context.job_id)
    if status in TERMINAL_STATUSES:
      logger.info("Job %s already %s; skipping run", context.job_id, status.value)
      return status is JobStatus.COMPLETED

    attempts = self._max_retries + 1
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
      try:
        await self._run_once(context)
        return True
      except Exception as exc:  # noqa: BLE001
        last_error = exc
        logger.warning("Job %s attempt %d/%d failed: %s", context.job_id, attempt, attempts, exc, exc_info=True)
      if attempt < attempts:
        await asyncio.sleep(self._retry_delay_seconds)

    await self._on_failure(context.job_id, last_error)
    return False

  async def _run_once(self, context: WorkflowContext) -> None:
    for definition in self._steps:
      checkpoint = await self._jobs.get_step(context.job_id, definition.step)
      if checkpoint is not None:
        logger.debug("Job %s reusing checkpoint for %s", context.job_id, definition.step.value)
        context.results[definition.step] = checkpoint.result
        continue
      try:
        result = await asyncio.wait_for(definition.handler(context), timeout=self._step_timeout_seconds)
      except TimeoutError as exc:
        raise StepTimeoutError(definition.step.value, self._step_timeout_seconds) from exc
      await self._jobs.set_step(context.job_id, definition.step, result)
      context.results[definition.step] = result
      logger.info("Job %s finished step %s", context.job_id, definition.step.value)

  async def _on_failure(self, job_id: str, error: Exception | None) -> None:
    status = await self._jobs.get_status(job_id)
    if status in TERMINAL_STATUSES:
      logger.info("Job %s already %s; failure handler skipped", job_id, status.value)
      return
    message = sanitize_error_message(error)
    await self._jobs.set_error(job_id, message)
    await self._jobs.set_status(job_id, JobStatus.FAILED)
    logger.error("Job %s failed after retries: %s", job_id, message)
