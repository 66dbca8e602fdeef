"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from schoolgen.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

MAX_TEXT_MODEL_CANDIDATES = 6
_STORE_BACKENDS = {"memory", "redis", "postgres"}
_TASK_PROVIDERS = {"inline", "local-http", "gcp"}
_IMAGE_PROVIDERS = {"gemini", "openai", "none"}
_AUDIO_PROVIDERS = {"suno", "none"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the school generator service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  store_backend: str
  redis_url: str
  pg_dsn: str | None
  pg_connect_timeout: int
  job_ttl_seconds: int
  job_marker_ttl_seconds: int
  model_preference_ttl_seconds: int
  mock_asset_ttl_seconds: int
  workflow_max_retries: int
  workflow_retry_delay_seconds: float
  step_timeout_seconds: float
  text_timeout_seconds: float
  image_timeout_seconds: float
  audio_timeout_seconds: float
  text_models: tuple[str, ...]
  anthropic_api_key: str | None
  gemini_api_key: str | None
  openai_compat_api_key: str | None
  openai_compat_base_url: str
  openai_api_key: str | None
  image_provider: str
  image_model: str
  audio_provider: str
  audio_hiragana: bool
  suno_api_key: str | None
  suno_base_url: str
  audio_poll_interval_seconds: float
  audio_poll_timeout_seconds: float
  asset_bucket: str | None
  asset_object_prefix: str
  gcs_storage_host: str | None
  gcp_project_id: str | None
  public_asset_base_url: str | None
  task_service_provider: str
  base_url: str | None
  task_secret: str | None
  cloud_tasks_queue_path: str | None
  cloud_run_invoker_service_account: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SCHOOLGEN_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("SCHOOLGEN_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _parse_positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _parse_choice(name: str, default: str, allowed: set[str]) -> str:
  value = (os.getenv(name) or default).strip().lower()
  if value not in allowed:
    raise ValueError(f"{name} must be one of {', '.join(sorted(allowed))}.")
  return value


def _parse_text_models(raw: str | None) -> tuple[str, ...]:
  """Parse an ordered ``provider:model`` list, deduplicated and capped."""
  if not raw:
    return ()

  candidates = [item.strip() for item in raw.split(",") if item.strip()]
  for candidate in candidates:
    if ":" not in candidate:
      raise ValueError("SCHOOLGEN_TEXT_MODELS entries must use the 'provider:model' form.")

  # Preserve configured order while dropping duplicates, then cap to keep latency bounded.
  ordered = list(dict.fromkeys(candidates))
  return tuple(ordered[:MAX_TEXT_MODEL_CANDIDATES])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SCHOOLGEN_ENV", "development").lower()
  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("SCHOOLGEN_DEBUG"))

  log_max_bytes = _parse_positive_int("SCHOOLGEN_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("SCHOOLGEN_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SCHOOLGEN_LOG_BACKUP_COUNT must be zero or a positive integer.")

  store_backend = _parse_choice("SCHOOLGEN_STORE_BACKEND", "memory", _STORE_BACKENDS)
  pg_dsn = _optional_str(os.getenv("SCHOOLGEN_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  if store_backend == "postgres" and not pg_dsn:
    raise ValueError("SCHOOLGEN_PG_DSN must be set when SCHOOLGEN_STORE_BACKEND=postgres.")

  text_timeout_seconds = _parse_positive_float("SCHOOLGEN_TEXT_TIMEOUT_SECONDS", "45")
  image_timeout_seconds = _parse_positive_float("SCHOOLGEN_IMAGE_TIMEOUT_SECONDS", "60")
  audio_timeout_seconds = _parse_positive_float("SCHOOLGEN_AUDIO_TIMEOUT_SECONDS", "90")
  step_timeout_seconds = _parse_positive_float("SCHOOLGEN_STEP_TIMEOUT_SECONDS", "240")
  # Provider calls must give up before the step does, otherwise no fallback is ever recorded.
  if step_timeout_seconds <= max(text_timeout_seconds, image_timeout_seconds, audio_timeout_seconds):
    raise ValueError("SCHOOLGEN_STEP_TIMEOUT_SECONDS must exceed every provider timeout.")

  workflow_max_retries = int(os.getenv("SCHOOLGEN_WORKFLOW_MAX_RETRIES", "2"))
  if workflow_max_retries < 0:
    raise ValueError("SCHOOLGEN_WORKFLOW_MAX_RETRIES must be zero or a positive integer.")

  workflow_retry_delay_seconds = float(os.getenv("SCHOOLGEN_WORKFLOW_RETRY_DELAY_SECONDS", "2"))
  if workflow_retry_delay_seconds < 0:
    raise ValueError("SCHOOLGEN_WORKFLOW_RETRY_DELAY_SECONDS must not be negative.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("SCHOOLGEN_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("SCHOOLGEN_LOG_HTTP_4XX")),
    store_backend=store_backend,
    redis_url=os.getenv("SCHOOLGEN_REDIS_URL", "redis://localhost:6379/0"),
    pg_dsn=pg_dsn,
    pg_connect_timeout=_parse_positive_int("SCHOOLGEN_PG_CONNECT_TIMEOUT", "5"),
    job_ttl_seconds=_parse_positive_int("SCHOOLGEN_JOB_TTL_SECONDS", "3600"),
    job_marker_ttl_seconds=_parse_positive_int("SCHOOLGEN_JOB_MARKER_TTL_SECONDS", "86400"),
    model_preference_ttl_seconds=_parse_positive_int("SCHOOLGEN_MODEL_PREFERENCE_TTL_SECONDS", "1800"),
    mock_asset_ttl_seconds=_parse_positive_int("SCHOOLGEN_MOCK_ASSET_TTL_SECONDS", "604800"),
    workflow_max_retries=workflow_max_retries,
    workflow_retry_delay_seconds=workflow_retry_delay_seconds,
    step_timeout_seconds=step_timeout_seconds,
    text_timeout_seconds=text_timeout_seconds,
    image_timeout_seconds=image_timeout_seconds,
    audio_timeout_seconds=audio_timeout_seconds,
    text_models=_parse_text_models(os.getenv("SCHOOLGEN_TEXT_MODELS")),
    anthropic_api_key=_optional_str(os.getenv("ANTHROPIC_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    openai_compat_api_key=_optional_str(os.getenv("SCHOOLGEN_OPENAI_COMPAT_API_KEY")) or _optional_str(os.getenv("OPENROUTER_API_KEY")),
    openai_compat_base_url=(os.getenv("SCHOOLGEN_OPENAI_COMPAT_BASE_URL") or "https://openrouter.ai/api/v1").strip(),
    openai_api_key=_optional_str(os.getenv("OPENAI_API_KEY")),
    image_provider=_parse_choice("SCHOOLGEN_IMAGE_PROVIDER", "gemini", _IMAGE_PROVIDERS),
    image_model=(os.getenv("SCHOOLGEN_IMAGE_MODEL") or "gemini-2.5-flash-image").strip(),
    audio_provider=_parse_choice("SCHOOLGEN_AUDIO_PROVIDER", "suno", _AUDIO_PROVIDERS),
    audio_hiragana=_parse_bool(os.getenv("SCHOOLGEN_AUDIO_HIRAGANA", "true")),
    suno_api_key=_optional_str(os.getenv("SCHOOLGEN_SUNO_API_KEY")) or _optional_str(os.getenv("COMET_API_KEY")),
    suno_base_url=(os.getenv("SCHOOLGEN_SUNO_BASE_URL") or "https://api.cometapi.com").strip().rstrip("/"),
    audio_poll_interval_seconds=_parse_positive_float("SCHOOLGEN_AUDIO_POLL_INTERVAL_SECONDS", "8"),
    audio_poll_timeout_seconds=_parse_positive_float("SCHOOLGEN_AUDIO_POLL_TIMEOUT_SECONDS", "60"),
    asset_bucket=_optional_str(os.getenv("SCHOOLGEN_ASSET_BUCKET")),
    asset_object_prefix=(os.getenv("SCHOOLGEN_ASSET_OBJECT_PREFIX") or "school-assets").strip(),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    public_asset_base_url=_optional_str(os.getenv("SCHOOLGEN_PUBLIC_ASSET_BASE_URL")),
    task_service_provider=_parse_choice("SCHOOLGEN_TASK_SERVICE_PROVIDER", "inline", _TASK_PROVIDERS),
    base_url=_optional_str(os.getenv("SCHOOLGEN_BASE_URL")),
    task_secret=_optional_str(os.getenv("SCHOOLGEN_TASK_SECRET")),
    cloud_tasks_queue_path=_optional_str(os.getenv("SCHOOLGEN_CLOUD_TASKS_QUEUE_PATH")),
    cloud_run_invoker_service_account=_optional_str(os.getenv("SCHOOLGEN_CLOUD_RUN_INVOKER_SERVICE_ACCOUNT")),
  )


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
