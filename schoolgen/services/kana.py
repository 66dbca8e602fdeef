"""Hiragana readings for anthem lyrics so the singing model does not misread kanji."""

from __future__ import annotations

import logging
from functools import lru_cache

import pykakasi

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _converter() -> pykakasi.kakasi:
  return pykakasi.kakasi()


def to_hiragana(text: str) -> str:
  """Return the hiragana reading line by line; the text as written when conversion fails."""
  if not text or not text.strip():
    return text
  try:
    converter = _converter()
    lines = ["".join(item["hira"] for item in converter.convert(line)) if line.strip() else line for line in text.split("\n")]
  except Exception as exc:  # noqa: BLE001
    logger.warning("Hiragana conversion failed; sending lyrics as written: %s", exc)
    return text
  return "\n".join(lines)
