"""Retry logic for rate-limited provider calls."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from schoolgen.ai.errors import is_rate_limit_error

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Short delays: the caller already runs under a wall-clock timeout.
DEFAULT_DELAYS: tuple[float, ...] = (1.0, 3.0)


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args, delays: Sequence[float] = DEFAULT_DELAYS, **kwargs) -> T:
  """Execute a coroutine function, retrying only 429/quota errors."""
  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not is_rate_limit_error(exc):
        raise
      wait = delay + random.uniform(0, delay / 2)
      logger.warning("Rate limited (attempt %d/%d); retrying in %.1fs: %s", attempt + 1, len(delays), wait, exc)
      await asyncio.sleep(wait)

  return await func(*args, **kwargs)
