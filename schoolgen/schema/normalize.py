"""Shape repair for artifact payloads returned by language models.

Providers sometimes nest top-level sections inside ``school_profile`` or return
singular objects where lists are expected. Precedence when a field exists both at
the top level and nested under the profile: the top-level value wins unless it is
empty (missing, ``None``, blank string, empty list or dict), in which case the
nested value is adopted. The nested copy is always removed from the profile.
"""

from __future__ import annotations

import copy
from typing import Any

from schoolgen.schema.school import SchoolArtifact

HOISTABLE_KEYS: tuple[str, ...] = (
  "principal_message",
  "school_anthem",
  "news_feed",
  "crazy_rules",
  "multimedia_content",
  "history",
  "notable_alumni",
  "teachers",
  "access",
  "style_config",
)

# Singular keys some models emit instead of the list form.
_MEDIA_ALIASES: dict[str, str] = {
  "club_activity": "club_activities",
  "school_event": "school_events",
  "facility": "facilities",
  "monument": "monuments",
  "uniform": "uniforms",
}


def is_empty(value: Any) -> bool:
  if value is None:
    return True
  if isinstance(value, str):
    return value.strip() == ""
  if isinstance(value, list | dict | tuple):
    return len(value) == 0
  return False


def normalize_artifact_payload(payload: Any) -> dict[str, Any]:
  """Return a repaired deep copy of a raw artifact payload."""
  if not isinstance(payload, dict):
    return {}
  normalized = copy.deepcopy(payload)
  _hoist_profile_fields(normalized)
  _normalize_profile(normalized)
  _normalize_anthem(normalized)
  _normalize_rules(normalized)
  _normalize_news(normalized)
  _normalize_media(normalized)
  if isinstance(normalized.get("history"), str):
    normalized["history"] = [normalized["history"]]
  return normalized


def normalize_artifact(artifact: SchoolArtifact) -> SchoolArtifact:
  """Normalize an already-validated artifact whose extras may hide nested sections."""
  return SchoolArtifact.model_validate(normalize_artifact_payload(artifact.model_dump(mode="json")))


def _hoist_profile_fields(payload: dict[str, Any]) -> None:
  profile = payload.get("school_profile")
  if not isinstance(profile, dict):
    payload["school_profile"] = {}
    return
  for key in HOISTABLE_KEYS:
    if key not in profile:
      continue
    nested = profile.pop(key)
    if is_empty(payload.get(key)) and not is_empty(nested):
      payload[key] = nested


def _listify(value: Any) -> list[Any]:
  if value is None:
    return []
  if isinstance(value, list):
    return value
  return [value]


def _as_item(value: Any, text_key: str = "name") -> dict[str, Any] | None:
  if isinstance(value, dict):
    return value
  if isinstance(value, str) and value.strip():
    return {text_key: value.strip()}
  return None


def _normalize_profile(payload: dict[str, Any]) -> None:
  profile = payload["school_profile"]
  buildings = [_as_item(item) for item in _listify(profile.get("historical_buildings"))]
  profile["historical_buildings"] = [item for item in buildings if item is not None]
  if profile.get("established") is not None and not isinstance(profile["established"], str):
    profile["established"] = str(profile["established"])
  for building in profile["historical_buildings"]:
    if building.get("year") is not None and not isinstance(building["year"], str):
      building["year"] = str(building["year"])


def _normalize_anthem(payload: dict[str, Any]) -> None:
  anthem = payload.get("school_anthem")
  if not isinstance(anthem, dict):
    payload["school_anthem"] = {}
    return
  lyrics = anthem.get("lyrics")
  if isinstance(lyrics, list):
    anthem["lyrics"] = "\n".join(str(line) for line in lyrics)
  elif lyrics is not None and not isinstance(lyrics, str):
    anthem["lyrics"] = str(lyrics)


def _normalize_rules(payload: dict[str, Any]) -> None:
  raw = payload.get("crazy_rules")
  if isinstance(raw, str):
    raw = raw.splitlines()
  rules: list[str] = []
  for item in _listify(raw):
    if isinstance(item, dict):
      item = next((value for value in item.values() if isinstance(value, str)), "")
    text = str(item).strip()
    if text:
      rules.append(text)
  payload["crazy_rules"] = rules


def _normalize_news(payload: dict[str, Any]) -> None:
  items = [_as_item(item, text_key="text") for item in _listify(payload.get("news_feed"))]
  payload["news_feed"] = [item for item in items if item is not None]


def _normalize_media(payload: dict[str, Any]) -> None:
  media = payload.get("multimedia_content")
  if not isinstance(media, dict):
    payload["multimedia_content"] = {}
    return
  for singular, plural in _MEDIA_ALIASES.items():
    if singular not in media:
      continue
    value = media.pop(singular)
    if is_empty(media.get(plural)):
      media[plural] = value
  for plural in _MEDIA_ALIASES.values():
    items = [_as_item(item) for item in _listify(media.get(plural))]
    media[plural] = [item for item in items if item is not None]
