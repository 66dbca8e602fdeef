"""Post-generation invariants: three-verse anthems and principal gender consistency."""

from __future__ import annotations

import re
from typing import Literal

Gender = Literal["male", "female"]

VERSE_COUNT = 3
VERSE_MARKERS: tuple[str, ...] = ("一", "二", "三")

# A marker line: kanji numerals, digits, "1番", "(2)", "[Verse 3]" and similar.
_MARKER_RE = re.compile(r"^\s*(?:[\[（(]?\s*(?:verse\s*)?(?:[一二三四五六七八九十]|\d{1,2})\s*(?:番)?\s*[\]）)]?[.．、:：]?)\s*$", re.IGNORECASE)

_FILLER_VERSES: tuple[str, ...] = (
  "{landmark}を 仰ぎつつ\n学びの道を 踏みしめて\n我らが {school} 誉れあり",
  "朝な夕なに 友と励み\n伝統を 受け継ぎ 明日へと\n我らが {school} 光あれ",
  "時は流れて 幾星霜\n永遠に 咲かせん この母校\n我らが {school} 栄えあれ",
)


def split_verses(lyrics: str | None) -> list[str]:
  """Split lyrics into non-empty verses using marker lines, else blank-line paragraphs."""
  if not lyrics or not lyrics.strip():
    return []
  lines = lyrics.replace("\r\n", "\n").split("\n")

  if any(_MARKER_RE.match(line) for line in lines if line.strip()):
    preamble: list[str] = []
    verses: list[list[str]] = []
    current: list[str] | None = None
    for line in lines:
      if _MARKER_RE.match(line) and line.strip():
        current = []
        verses.append(current)
        continue
      if not line.strip():
        continue
      (preamble if current is None else current).append(line.strip())
    marked = ["\n".join(verse) for verse in verses if verse]
    # Unmarked text ahead of a full set of verses is a title line, not lyrics.
    if preamble and len(marked) < VERSE_COUNT:
      marked.insert(0, "\n".join(preamble))
    return marked

  paragraphs = re.split(r"\n\s*\n", "\n".join(lines))
  return [paragraph.strip() for paragraph in paragraphs if paragraph.strip()]


def filler_verse(index: int, *, school_name: str, landmark: str) -> str:
  template = _FILLER_VERSES[index % len(_FILLER_VERSES)]
  return template.format(school=school_name, landmark=landmark)


def ensure_three_verses(lyrics: str | None, *, school_name: str, landmark: str) -> str:
  """Return lyrics rendered as exactly three marked verses, padding with templated filler."""
  verses = split_verses(lyrics)[:VERSE_COUNT]
  while len(verses) < VERSE_COUNT:
    verses.append(filler_verse(len(verses), school_name=school_name, landmark=landmark))
  return "\n".join(f"{marker}\n{verse}" for marker, verse in zip(VERSE_MARKERS, verses, strict=True))


# Endings of Japanese given names, checked longest first.
_FEMALE_ENDINGS: tuple[str, ...] = ("美", "子", "恵", "江", "代", "奈", "香", "花", "菜", "里", "絵", "乃", "華", "枝", "音", "穂", "葉", "咲", "さくら", "ちゃん", "こ", "み", "え", "な", "か")
_MALE_ENDINGS: tuple[str, ...] = ("太郎", "次郎", "三郎", "郎", "夫", "男", "雄", "介", "助", "輔", "蔵", "太", "吉", "平", "彦", "之", "朗", "樹", "司", "治", "也", "斗", "翔", "一", "衛門", "兵衛", "門", "造", "正", "博", "勇", "ろう", "お")


def infer_gender(name: str | None) -> Gender | None:
  """Guess gender from the given name (the part after the family name).

  Deterministic and intentionally coarse; None means no signal.
  """
  if not name:
    return None
  tokens = name.replace("　", " ").split()
  given = tokens[-1] if tokens else name
  for ending in sorted(_MALE_ENDINGS + _FEMALE_ENDINGS, key=len, reverse=True):
    if given.endswith(ending):
      return "male" if ending in _MALE_ENDINGS else "female"
  return None


_GENDER_WORDS: dict[Gender, dict[str, str]] = {
  "male": {"woman": "man", "women": "men", "female": "male", "lady": "gentleman", "she": "he", "her": "his", "hers": "his", "mrs": "mr", "ms": "mr", "grandmother": "grandfather", "girl": "boy"},
  "female": {"man": "woman", "men": "women", "male": "female", "gentleman": "lady", "he": "she", "his": "her", "him": "her", "mr": "ms", "grandfather": "grandmother", "boy": "girl"},
}
_GENDER_MARKER_RE = re.compile(r"\b(?:man|woman|men|women|male|female|gentleman|lady)\b", re.IGNORECASE)


def _match_case(source: str, replacement: str) -> str:
  if source.isupper():
    return replacement.upper()
  if source[:1].isupper():
    return replacement[:1].upper() + replacement[1:]
  return replacement


def reconcile_face_prompt(name: str | None, face_prompt: str | None) -> str | None:
  """Rewrite gendered words in an English portrait prompt to agree with the name."""
  if not face_prompt:
    return face_prompt
  gender = infer_gender(name)
  if gender is None:
    return face_prompt

  swaps = _GENDER_WORDS[gender]
  pattern = re.compile(r"\b(" + "|".join(sorted(swaps, key=len, reverse=True)) + r")\b", re.IGNORECASE)
  reconciled = pattern.sub(lambda match: _match_case(match.group(0), swaps[match.group(0).lower()]), face_prompt)

  if not _GENDER_MARKER_RE.search(reconciled):
    reconciled = f"{gender} subject, {reconciled}"
  return reconciled
