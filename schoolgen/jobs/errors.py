"""Errors raised by the job workflow."""

from __future__ import annotations


class WorkflowError(RuntimeError):
  """Raised when a workflow step fails in a way retries cannot absorb."""

  def __init__(self, message: str, *, step: str | None = None) -> None:
    super().__init__(message)
    self.step = step


class StepTimeoutError(WorkflowError):
  """Raised when a step exceeds its orchestrator-level deadline."""

  def __init__(self, step: str, timeout_seconds: float) -> None:
    super().__init__(f"Step '{step}' timed out after {timeout_seconds:g}s", step=step)
    self.timeout_seconds = timeout_seconds


class JobNotFoundError(LookupError):
  """Raised when a job has no stored request to run."""
