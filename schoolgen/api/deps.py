"""Shared FastAPI dependencies."""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException, status

from schoolgen.config import Settings, get_settings
from schoolgen.services.assets import AssetGenerator, build_asset_generator

logger = logging.getLogger(__name__)


def get_asset_generator(settings: Settings = Depends(get_settings)) -> AssetGenerator:  # noqa: B008
  """Dependency returning an asset generator wired from settings."""
  return build_asset_generator(settings)


def require_task_secret(
  settings: Settings = Depends(get_settings),  # noqa: B008
  authorization: str | None = Header(default=None),
  x_schoolgen_task_secret: str | None = Header(default=None),
) -> None:
  """Reject internal task calls that do not carry the shared secret."""
  # Deny by default when no secret is configured.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Tasks OIDC occupies Authorization, so the dedicated header is checked first.
  shared_secret_valid = secrets.compare_digest(x_schoolgen_task_secret or "", settings.task_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to internal task endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
