import json
import logging
import re
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError

from schoolgen.ai.json_parser import extract_json_block
from schoolgen.config import Settings
from schoolgen.core.json import UnicodeJSONResponse
from schoolgen.jobs.errors import WorkflowError

DEFAULT_FAILURE_MESSAGE = "処理に失敗しました"
MAX_ERROR_MESSAGE_CHARS = 200
_WHITESPACE_RE = re.compile(r"\s+")


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  # Serialize exception instances explicitly to avoid leaking non-serializable objects.
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, settings: Settings, *, request_id: str | None = None, error: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  # Clients key off `error`; `detail` keeps structured context for 4xx responses.
  message = error or (detail if isinstance(detail, str) else "Request failed")
  payload: dict[str, Any] = {"error": message, "detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key not in {"input", "url"}}
    # Remove nested input values from context payloads as well.
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


def _summarize_validation_errors(errors: list[dict[str, Any]]) -> str:
  """Render validation errors as one short human-readable line."""
  if not errors:
    return "Invalid request body."
  parts = []
  for error in errors[:3]:
    location = ".".join(str(item) for item in error.get("loc", ()) if item != "body") or "body"
    parts.append(f"{location}: {error.get('msg', 'invalid value')}")
  return "Invalid request: " + "; ".join(parts)


def _message_from_json(payload: Any) -> str | None:
  """Pick the human-readable message out of a provider error body."""
  if isinstance(payload, str):
    return payload or None
  if not isinstance(payload, dict):
    return None
  for key in ("message", "error_description", "detail"):
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
      return value
  # Provider bodies commonly nest the useful part under "error".
  nested = payload.get("error")
  if nested is not None:
    return _message_from_json(nested)
  return None


def sanitize_error_message(error: BaseException | str | None, *, limit: int = MAX_ERROR_MESSAGE_CHARS) -> str:
  """Return a short, user-safe failure message that never echoes raw JSON."""
  raw = error if isinstance(error, str) else (str(error) if error is not None else "")
  text = raw.strip()

  block = extract_json_block(text) if text else None
  if block is not None:
    try:
      parsed = json.loads(block)
    except json.JSONDecodeError:
      parsed = None
    extracted = _message_from_json(parsed)
    if extracted:
      text = extracted
    else:
      # Drop the JSON body and keep whatever prose surrounded it.
      text = text.replace(block, " ")

  text = _WHITESPACE_RE.sub(" ", text).strip(" :-")
  if not text or text.startswith(("{", "[")):
    return DEFAULT_FAILURE_MESSAGE
  return text[:limit]


async def global_exception_handler(request: Request, exc: Exception) -> UnicodeJSONResponse:
  """Global exception handler to catch unhandled errors."""
  from schoolgen.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return UnicodeJSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", settings, request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> UnicodeJSONResponse:
  """Reject malformed bodies as plain client errors without leaking payloads."""
  from schoolgen.config import get_settings

  settings = get_settings()
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  # Keep validation logs concise because 400s are client-correctable and expected.
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  summary = _summarize_validation_errors(sanitized_errors)
  return UnicodeJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_payload(sanitized_errors, settings, request_id=request_id, error=summary))


async def http_exception_handler(request: Request, exc: HTTPException) -> UnicodeJSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  from schoolgen.config import get_settings

  settings = get_settings()
  request_id = getattr(request.state, "request_id", None)
  # Log 5xx HTTPExceptions with a traceback for diagnostics; do not expose `exc.detail` to callers.
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return UnicodeJSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", settings, request_id=request_id))

  if settings.log_http_4xx:
    logger = logging.getLogger("uvicorn.error")
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return UnicodeJSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, settings, request_id=request_id), headers=getattr(exc, "headers", None))


async def workflow_exception_handler(request: Request, exc: WorkflowError) -> UnicodeJSONResponse:
  """Return a structured failure response for workflow errors."""
  from schoolgen.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Workflow failure request_id=%s path=%s step=%s error_type=%s", request_id, request.url.path, exc.step, type(exc).__name__, exc_info=True)
  # Provider error bodies may carry prompts or keys; callers only get the generic message.
  return UnicodeJSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", settings, request_id=request_id))
