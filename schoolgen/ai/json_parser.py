"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class JSONRepairError(ValueError):
  """Raised when no recovery pass yields a JSON object."""


def strip_json_fences(raw: str) -> str:
  """Drop surrounding markdown code fences."""
  return _FENCE_RE.sub("", raw.strip())


def parse_json_object(raw: str) -> dict[str, Any]:
  """Parse model output into a JSON object, escalating through repair passes.

  Order: strict parse, then the extracted top-level object, then trailing-comma
  removal, then a generic repair (bare keys, missing commas, truncation).
  """
  text = strip_json_fences(raw or "")
  if not text:
    raise JSONRepairError("Empty model response.")

  candidates = [text]
  block = extract_json_block(text)
  if block is not None and block != text:
    candidates.append(block)
  # Truncated output has no balanced block; repair from the first brace instead.
  if block is None and "{" in text:
    candidates.append(text[text.index("{") :])

  passes: tuple[Callable[[str], str], ...] = (lambda value: value, strip_trailing_commas, repair_json)
  last_error: Exception | None = None
  for transform in passes:
    for candidate in candidates:
      try:
        parsed = json.loads(transform(candidate))
      except json.JSONDecodeError as exc:
        last_error = exc
        continue
      if isinstance(parsed, dict):
        return parsed
      last_error = JSONRepairError(f"Expected a JSON object, got {type(parsed).__name__}.")

  raise JSONRepairError(f"Unparseable model output: {last_error}")


def extract_json_block(raw: str) -> str | None:
  """Return the first balanced top-level ``{...}`` span, honoring string escapes."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char == "{":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def strip_trailing_commas(raw: str) -> str:
  """Remove trailing commas before closing brackets."""
  return _TRAILING_COMMA_RE.sub(r"\1", raw)


def repair_json(raw: str) -> str:
  """Best-effort structural repair for near-JSON text."""
  repaired = strip_trailing_commas(raw)
  repaired = _quote_bare_keys(repaired)
  repaired = _insert_missing_commas(repaired)
  repaired = _close_truncated(repaired)
  return strip_trailing_commas(repaired)


def _quote_bare_keys(raw: str) -> str:
  """Wrap JS-style identifier keys in double quotes."""
  output: list[str] = []
  in_string = False
  escape = False
  expecting_key = False
  index = 0
  while index < len(raw):
    char = raw[index]
    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      index += 1
      continue

    if char == '"':
      in_string = True
      expecting_key = False
    elif char in "{,":
      expecting_key = True
    elif expecting_key and (char.isalpha() or char == "_"):
      end = index
      while end < len(raw) and (raw[end].isalnum() or raw[end] in "_-"):
        end += 1
      probe = end
      while probe < len(raw) and raw[probe].isspace():
        probe += 1
      # Only identifiers directly followed by a colon are keys.
      if probe < len(raw) and raw[probe] == ":":
        output.append(f'"{raw[index:end]}"')
        expecting_key = False
        index = end
        continue
      expecting_key = False
    elif not char.isspace():
      expecting_key = False

    output.append(char)
    index += 1
  return "".join(output)


def _insert_missing_commas(raw: str) -> str:
  """Insert commas between adjacent values such as ``"a" "b"`` or ``} {``."""
  output: list[str] = []
  in_string = False
  escape = False
  value_ended = False
  for char in raw:
    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
        value_ended = True
      continue

    if char.isspace():
      output.append(char)
      continue

    if value_ended and (char == '"' or char in "{["):
      output.append(",")

    if char == '"':
      in_string = True
      value_ended = False
    elif char in "}]":
      value_ended = True
    elif char in ",:{[":
      value_ended = False
    else:
      # Numbers and literals end a value once they are followed by a delimiter.
      value_ended = True
    output.append(char)
  return "".join(output)


_DANGLING_KEY_RE = re.compile(r'([,{])\s*"[^"]*"\s*:?\s*$')
_DANGLING_COLON_RE = re.compile(r":\s*$")


def _close_truncated(raw: str) -> str:
  """Close an unterminated string and any open containers."""
  stack: list[str] = []
  in_string = False
  escape = False
  for char in raw:
    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue
    if char == '"':
      in_string = True
    elif char in "{[":
      stack.append(char)
    elif char in "}]" and stack:
      stack.pop()

  tail = raw.rstrip()
  if escape:
    tail = tail[:-1]
  if in_string:
    tail += '"'
  if not stack:
    return tail
  # Inside an object a trailing quoted token can only be an incomplete key.
  if stack[-1] == "{":
    tail = _DANGLING_KEY_RE.sub(lambda match: "" if match.group(1) == "," else "{", tail)
  tail = _DANGLING_COLON_RE.sub(": null", tail)
  closers = "".join("}" if opener == "{" else "]" for opener in reversed(stack))
  return tail + closers
