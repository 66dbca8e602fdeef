from __future__ import annotations

import pytest

from schoolgen.ai.invariants import ensure_three_verses, infer_gender, reconcile_face_prompt, split_verses


def _verse_bodies(lyrics: str) -> list[str]:
  return split_verses(lyrics)


def test_marked_lyrics_are_split_on_marker_lines() -> None:
  lyrics = "一\n朝日に映える\n二\n夕日に染まる\n三\n星空に誓う"
  assert split_verses(lyrics) == ["朝日に映える", "夕日に染まる", "星空に誓う"]


def test_numbered_and_bracketed_markers_are_recognized() -> None:
  lyrics = "1番\nあ\n(2)\nい\n[Verse 3]\nう"
  assert split_verses(lyrics) == ["あ", "い", "う"]


def test_title_line_before_marked_verses_is_dropped() -> None:
  lyrics = "校歌\n一\n朝日に映える\n二\n夕日に染まる\n三\n星空に誓う"

  assert split_verses(lyrics) == ["朝日に映える", "夕日に染まる", "星空に誓う"]
  assert ensure_three_verses(lyrics, school_name="s", landmark="l").endswith("三\n星空に誓う")


def test_unmarked_opening_verse_is_kept_when_markers_are_short() -> None:
  assert split_verses("朝日に映える\n二\n夕日に染まる\n三\n星空に誓う") == ["朝日に映える", "夕日に染まる", "星空に誓う"]


def test_unmarked_lyrics_split_on_blank_lines() -> None:
  assert split_verses("第一連\n続き\n\n第二連") == ["第一連\n続き", "第二連"]


def test_empty_lyrics_have_no_verses() -> None:
  assert split_verses("") == []
  assert split_verses(None) == []


def test_single_verse_is_padded_to_three() -> None:
  result = ensure_three_verses("一\nただ一つの歌", school_name="丘学園", landmark="富士山")

  lines = result.split("\n")
  assert lines[0] == "一"
  assert lines[1] == "ただ一つの歌"
  assert "二" in lines and "三" in lines
  bodies = _verse_bodies(result)
  assert len(bodies) == 3
  assert "丘学園" in bodies[1] and "丘学園" in bodies[2]


def test_five_verses_are_trimmed_to_the_first_three() -> None:
  lyrics = "\n\n".join(["第一", "第二", "第三", "第四", "第五"])
  assert ensure_three_verses(lyrics, school_name="x", landmark="y") == "一\n第一\n二\n第二\n三\n第三"


def test_empty_lyrics_become_three_filler_verses() -> None:
  result = ensure_three_verses("", school_name="海辺学園", landmark="灯台")
  bodies = _verse_bodies(result)
  assert len(bodies) == 3
  assert "灯台" in bodies[0]
  assert len(set(bodies)) == 3


def test_three_verse_output_is_stable() -> None:
  once = ensure_three_verses("a\n\nb", school_name="s", landmark="l")
  assert ensure_three_verses(once, school_name="s", landmark="l") == once


@pytest.mark.parametrize(
  ("name", "expected"),
  [
    ("山田 太郎", "male"),
    ("佐藤 花子", "female"),
    ("鈴木　健一", "male"),
    ("高橋 由美", "female"),
    ("田中 翔", "male"),
    ("Smith", None),
    ("", None),
    (None, None),
  ],
)
def test_infer_gender(name: str | None, expected: str | None) -> None:
  assert infer_gender(name) == expected


def test_face_prompt_is_rewritten_for_female_name() -> None:
  prompt = "Portrait of an elderly Japanese man in a suit, his glasses reflecting light"
  assert reconcile_face_prompt("佐藤 花子", prompt) == "Portrait of an elderly Japanese woman in a suit, her glasses reflecting light"


def test_face_prompt_swap_preserves_case() -> None:
  assert reconcile_face_prompt("山田 太郎", "Woman smiling, WOMAN in frame") == "Man smiling, MAN in frame"


def test_face_prompt_without_gender_word_gets_prefix() -> None:
  assert reconcile_face_prompt("佐藤 花子", "Portrait, studio lighting") == "female subject, Portrait, studio lighting"


def test_face_prompt_unchanged_without_gender_signal() -> None:
  prompt = "Portrait of a man"
  assert reconcile_face_prompt("Smith", prompt) == prompt
  assert reconcile_face_prompt("佐藤 花子", None) is None
