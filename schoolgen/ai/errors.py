"""Shared error classification helpers for AI provider handling."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Literal

import anthropic
import httpx
import openai
from google.genai import errors as genai_errors
from pydantic import ValidationError

from schoolgen.ai.json_parser import JSONRepairError

ErrorKind = Literal["output", "provider", "connection", "unexpected"]

_PROVIDER_HINTS: tuple[str, ...] = (
  "unsupported model",
  "model not found",
  "no such model",
  "not available",
  "rate limit",
  "quota",
  "resource exhausted",
  "timeout",
  "timed out",
  "api key",
  "unauthorized",
  "forbidden",
  "service unavailable",
  "bad gateway",
  "overloaded",
)

_OUTPUT_HINTS: tuple[str, ...] = (
  "invalid json",
  "failed to parse",
  "parse json",
  "empty model response",
  "no content",
)


class ProviderResponseError(RuntimeError):
  """Raised by provider adapters when a 2xx response carries no usable payload."""


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  return any(hint in message for hint in hints)


def is_rate_limit_error(exc: BaseException) -> bool:
  """Return True for 429 / quota style failures worth a short backoff."""
  if isinstance(exc, openai.RateLimitError | anthropic.RateLimitError):
    return True
  if isinstance(exc, genai_errors.APIError) and getattr(exc, "code", None) == 429:
    return True
  message = str(exc)
  return "429" in message or "Too Many Requests" in message or "RESOURCE_EXHAUSTED" in message


def classify_error(exc: BaseException) -> ErrorKind:
  """Bucket an exception raised while calling a model.

  ``output`` and ``provider`` failures are recoverable by trying another model or
  falling back to mock content. ``connection`` means the network itself failed.
  ``unexpected`` covers programming errors that must propagate.
  """
  if isinstance(exc, JSONRepairError | ValidationError | ProviderResponseError):
    return "output"
  if isinstance(exc, openai.APITimeoutError | anthropic.APITimeoutError | httpx.TimeoutException | asyncio.TimeoutError | TimeoutError):
    return "provider"
  if isinstance(exc, openai.APIConnectionError | anthropic.APIConnectionError | httpx.ConnectError | httpx.NetworkError | ConnectionError):
    return "connection"
  if isinstance(exc, openai.APIError | anthropic.APIError | genai_errors.APIError | httpx.HTTPStatusError):
    return "provider"
  message = str(exc).lower()
  if _match_hint(message, _OUTPUT_HINTS):
    return "output"
  if _match_hint(message, _PROVIDER_HINTS):
    return "provider"
  return "unexpected"
