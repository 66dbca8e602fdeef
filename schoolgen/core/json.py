"""Custom JSON handling."""

from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse


class AppJSONEncoder(json.JSONEncoder):
  """Encoder for values that reach responses outside of pydantic models."""

  def default(self, obj: Any) -> Any:
    if isinstance(obj, Enum):
      return obj.value
    if isinstance(obj, datetime | date):
      return obj.isoformat()
    return super().default(obj)


class UnicodeJSONResponse(JSONResponse):
  """JSONResponse that keeps Japanese text readable instead of escaping it."""

  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":"), cls=AppJSONEncoder).encode("utf-8")
