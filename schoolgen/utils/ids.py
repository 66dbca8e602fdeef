"""Identifier utilities."""

from __future__ import annotations

import re
import secrets
import string
import time

JOB_ID_PREFIX = "school"
_BASE36 = string.digits + string.ascii_lowercase
JOB_ID_PATTERN = re.compile(r"^school-\d{13,}-[0-9a-z]{8}$")


def generate_job_id(*, now_ms: int | None = None) -> str:
  """Return a new URL-safe job identifier: ``school-{epoch_ms}-{8 base36 chars}``."""
  timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
  suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
  return f"{JOB_ID_PREFIX}-{timestamp}-{suffix}"


def is_job_id(value: str) -> bool:
  """Return True when the value matches the job id format."""
  return bool(JOB_ID_PATTERN.match(value))


def generate_object_name(prefix: str, extension: str) -> str:
  """Return a collision-resistant object name for uploaded assets."""
  token = secrets.token_hex(8)
  return f"{prefix.strip('/')}/{int(time.time() * 1000)}-{token}.{extension.lstrip('.')}"
